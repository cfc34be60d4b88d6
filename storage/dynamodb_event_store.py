"""DynamoDB event store for synchronized tour events."""
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from processor.models import StoredEvent

logger = logging.getLogger(__name__)


class DynamoDBEventStore:
    """Event store backed by a DynamoDB table keyed by 'id'."""

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBEventStore for table: {table_name}")

    def get_all_events(self) -> List[StoredEvent]:
        """
        Retrieve all events from DynamoDB using Scan operation.

        Returns:
            List of StoredEvent objects
        """
        logger.info("Scanning DynamoDB table for all events")

        try:
            response = self.table.scan()
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

        events = []
        for item in items:
            event = self._item_to_stored_event(item)
            if event:
                events.append(event)

        logger.info(f"Retrieved {len(events)} events from DynamoDB")
        return events

    def create_event(self, fields: Dict[str, Any]) -> StoredEvent:
        """
        Insert a new event with a generated id.

        Args:
            fields: Event fields

        Returns:
            The stored event
        """
        now = int(time.time())
        item = {
            key: value for key, value in fields.items() if value is not None
        }
        item['id'] = str(uuid.uuid4())
        item['created_at'] = now
        item['updated_at'] = now

        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error creating event {fields.get('external_id')}: {e}")
            raise

        return self._item_to_stored_event(item)

    def update_event(self, event_id: str, fields: Dict[str, Any]) -> None:
        """
        Overwrite the given fields of an existing event.

        Fields set to None are removed from the item.

        Args:
            event_id: Store id of the event
            fields: Event fields to overwrite
        """
        names = {'#id': 'id', '#updated_at': 'updated_at'}
        values: Dict[str, Any] = {':updated_at': int(time.time())}
        set_clauses = ['#updated_at = :updated_at']
        remove_clauses = []

        for i, (key, value) in enumerate(sorted(fields.items())):
            if key == 'id':
                continue
            names[f'#f{i}'] = key
            if value is None:
                remove_clauses.append(f'#f{i}')
            else:
                values[f':v{i}'] = value
                set_clauses.append(f'#f{i} = :v{i}')

        expression = 'SET ' + ', '.join(set_clauses)
        if remove_clauses:
            expression += ' REMOVE ' + ', '.join(remove_clauses)

        try:
            self.table.update_item(
                Key={'id': event_id},
                UpdateExpression=expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ConditionExpression='attribute_exists(#id)'
            )
        except ClientError as e:
            logger.error(f"Error updating event {event_id}: {e}")
            raise

    def archive_event(self, event_id: str) -> None:
        """
        Flag an event as archived. Archived events are never deleted.

        Args:
            event_id: Store id of the event
        """
        try:
            self.table.update_item(
                Key={'id': event_id},
                UpdateExpression='SET is_archived = :archived, updated_at = :updated_at',
                ExpressionAttributeNames={'#id': 'id'},
                ExpressionAttributeValues={
                    ':archived': True,
                    ':updated_at': int(time.time())
                },
                ConditionExpression='attribute_exists(#id)'
            )
        except ClientError as e:
            logger.error(f"Error archiving event {event_id}: {e}")
            raise

    def _item_to_stored_event(self, item: dict) -> Optional[StoredEvent]:
        """
        Convert DynamoDB item to StoredEvent object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            StoredEvent object or None if conversion fails
        """
        try:
            return StoredEvent(
                id=item['id'],
                external_id=item.get('external_id'),
                name=item['name'],
                start_date=item['start_date'],
                end_date=item['end_date'],
                is_archived=bool(item.get('is_archived', False)),
                country=item.get('country', ''),
                cities=list(item.get('cities', [])),
                price=int(item.get('price', 0)),
                price_currency=item.get('price_currency', ''),
                tour_type=item.get('tour_type', ''),
                participant_limit=int(item.get('participant_limit', 0)),
                description=item.get('description'),
                website_url=item.get('website_url')
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to StoredEvent: {e}")
            return None
