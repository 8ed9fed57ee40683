"""DynamoDB-backed cache of today's lessons."""
import logging
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from processor.exceptions import NotFoundError, TransientExternalError
from processor.models import CACHE_COLUMNS, LessonRecord, LessonStatus

logger = logging.getLogger(__name__)


# Key of the item holding the snapshot header
HEADER_KEY = '#header'

# Flags that downstream collaborators may set on a cached lesson
STATUS_FIELDS = ('pdfUploaded', 'historyRecorded')


class LessonCacheStore:
    """Store for the lessons snapshot and its status flags."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table (hash key 'event_id')
            region_name: AWS region (default: from environment)
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized LessonCacheStore for table: {table_name}")

    def _scan_items(self, **kwargs) -> List[dict]:
        """
        Scan the whole table, following pagination.

        Raises:
            TransientExternalError: If a scan request fails
        """
        try:
            response = self.table.scan(**kwargs)
            items = response.get('Items', [])
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **kwargs
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise TransientExternalError(f"Error scanning lessons cache: {e}") from e
        return items

    def read_rows(self) -> List[dict]:
        """
        Read the snapshot rows in snapshot order.

        Returns:
            Column-keyed row dictionaries; empty if the table holds no rows
        """
        items = [
            item for item in self._scan_items()
            if item.get('event_id') != HEADER_KEY
        ]
        items.sort(key=lambda item: int(item.get('position', 0)))
        return [
            {column: item.get(column) for column in CACHE_COLUMNS}
            for item in items
        ]

    def read_lessons(self) -> List[dict]:
        """Return the snapshot rows with flags normalized, as served to the UI."""
        return [
            dict(zip(CACHE_COLUMNS, record.to_row()))
            for record in self.read_snapshot()
        ]

    def read_snapshot(self) -> List[LessonRecord]:
        """
        Read the previous snapshot.

        Returns:
            LessonRecord objects in snapshot order; rows that cannot be
            parsed are skipped
        """
        records = []
        for row in self.read_rows():
            try:
                records.append(LessonRecord.from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to convert cache row to LessonRecord: {e}")
                continue
        logger.info(f"Read {len(records)} lessons from cache")
        return records

    def replace_snapshot(self, header: List[str], rows: List[list]) -> int:
        """
        Replace the whole snapshot: write header and rows, then delete the
        items the new snapshot no longer contains.

        Puts overwrite by event id, so a failed write leaves every previous
        row readable.

        Args:
            header: Column names, first column being the event id
            rows: Row values in header order

        Returns:
            Count of data rows written

        Raises:
            TransientExternalError: If a batch request fails
        """
        existing_keys = [
            item['event_id']
            for item in self._scan_items(ProjectionExpression='event_id')
        ]

        items = [{'event_id': HEADER_KEY, 'position': -1, 'columns': list(header)}]
        for position, row in enumerate(rows):
            item = dict(zip(header, row))
            item['event_id'] = str(row[0])
            item['position'] = position
            items.append(item)

        new_keys = {item['event_id'] for item in items}
        stale_keys = [key for key in existing_keys if key not in new_keys]
        logger.info(
            f"Replacing snapshot: writing {len(rows)} rows, "
            f"removing {len(stale_keys)} stale items"
        )

        self._batch_write(items)
        self._batch_delete(stale_keys)

        logger.info(f"Wrote {len(rows)} lessons to cache")
        return len(rows)

    def list_statuses(self) -> List[LessonStatus]:
        """Return the completion flags of every cached lesson."""
        return [
            LessonStatus(
                event_id=record.event_id,
                pdf_uploaded=record.pdf_uploaded,
                history_recorded=record.history_recorded
            )
            for record in self.read_snapshot()
        ]

    def set_status(self, event_id: str, field: str, value: bool) -> None:
        """
        Set one completion flag of a cached lesson.

        Args:
            event_id: Event identifier of the cached lesson
            field: 'pdfUploaded' or 'historyRecorded'
            value: New flag value

        Raises:
            ValueError: If field is not a status field
            NotFoundError: If no cached lesson has this event_id
            TransientExternalError: On any other DynamoDB failure
        """
        if field not in STATUS_FIELDS:
            raise ValueError(f"Unknown status field: {field}")
        if event_id == HEADER_KEY:
            raise NotFoundError(f"EventID not found in lessons cache: {event_id}")

        try:
            self.table.update_item(
                Key={'event_id': event_id},
                UpdateExpression='SET #field = :value',
                ConditionExpression='attribute_exists(event_id)',
                ExpressionAttributeNames={'#field': field},
                ExpressionAttributeValues={':value': bool(value)}
            )
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            if code == 'ConditionalCheckFailedException':
                raise NotFoundError(
                    f"EventID not found in lessons cache: {event_id}"
                ) from e
            logger.error(f"Error updating {field} for {event_id}: {e}")
            raise TransientExternalError(f"Error updating lessons cache: {e}") from e

        logger.info(f"Set {field}={bool(value)} for event: {event_id}")

    def set_status_by_folder(self, folder_key: str, field: str, value: bool) -> str:
        """
        Set a completion flag on the first cached lesson filed under a folder.

        Returns:
            Event id of the updated lesson

        Raises:
            NotFoundError: If no cached lesson has this folder key
        """
        for record in self.read_snapshot():
            if record.folder_key == folder_key:
                self.set_status(record.event_id, field, value)
                return record.event_id
        raise NotFoundError(f"Row for '{folder_key}' not found in lessons cache")

    def _batch_write(self, items: List[Dict]) -> None:
        for i in range(0, len(items), self.BATCH_SIZE):
            batch = items[i:i + self.BATCH_SIZE]
            try:
                with self.table.batch_writer() as writer:
                    for item in batch:
                        writer.put_item(Item=item)
            except ClientError as e:
                logger.error(f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}")
                raise TransientExternalError(f"Error writing lessons cache: {e}") from e

    def _batch_delete(self, keys: List[str]) -> None:
        for i in range(0, len(keys), self.BATCH_SIZE):
            batch = keys[i:i + self.BATCH_SIZE]
            try:
                with self.table.batch_writer() as writer:
                    for key in batch:
                        writer.delete_item(Key={'event_id': key})
            except ClientError as e:
                logger.error(f"Error deleting batch {i // self.BATCH_SIZE + 1}: {e}")
                raise TransientExternalError(f"Error clearing lessons cache: {e}") from e
