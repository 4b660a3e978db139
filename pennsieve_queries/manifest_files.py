"""Manifest-file table queries and synchronisation of client file lists."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from itertools import islice
from typing import Any, Iterable, Iterator, Mapping

from .dynamo_manifests import DynamoQueryError, ManifestQueries
from .manifest_models import (
    AddFilesStats,
    FileDTO,
    FileStatus,
    FileStatusDTO,
    ManifestFileItem,
)
from .write_requests import (
    WriteRequest,
    get_write_request,
    remove_failed_files_from_response,
)

log = logging.getLogger(__name__)

BATCH_SIZE = 25  # maximum number of requests in one BatchWriteItem call
NR_WORKERS = 2
MAX_RETRIES = 5


class ManifestFileNotFoundError(DynamoQueryError, LookupError):
    """Raised when no manifest file exists for the requested key."""


def _chunks(items: Iterable[FileDTO], size: int) -> Iterator[list[FileDTO]]:
    iterator = iter(items)
    while batch := list(islice(iterator, size)):
        yield batch


def _count(request_items: Mapping[str, list[Any]]) -> int:
    return sum(len(requests) for requests in request_items.values())


def _file_key(manifest_id: str, upload_id: str) -> dict[str, dict[str, str]]:
    return {"ManifestId": {"S": manifest_id}, "UploadId": {"S": upload_id}}


class DynamoQueries(ManifestQueries):
    """Manifest and manifest-file queries against a DynamoDB client."""

    retry_delay = 0.2  # seconds; the n-th retry waits (n + 1) times this

    def update_file_table_status(
        self,
        table_name: str,
        manifest_id: str,
        upload_id: str,
        status: FileStatus,
        message: str,
    ) -> None:
        """Set the status and message of a file, setting or clearing its in-progress flag."""
        names = {"#status": "Status", "#msg": "Message", "#inProgress": "InProgress"}
        values: dict[str, Any] = {
            ":statusValue": {"S": str(status)},
            ":msgValue": {"S": message},
        }
        flag = status.in_progress_flag()
        if flag:
            expression = "SET #inProgress = :inProgressValue, #status = :statusValue, #msg = :msgValue"
            values[":inProgressValue"] = {"S": flag}
        else:
            expression = "SET #status = :statusValue, #msg = :msgValue REMOVE #inProgress"

        self.db.update_item(
            TableName=table_name,
            Key=_file_key(manifest_id, upload_id),
            UpdateExpression=expression,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
        )

    def get_files_for_path(
        self,
        table_name: str,
        manifest_id: str,
        path: str,
        filter_expression: str,
        limit: int,
        start_key: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        """Return the raw query result for files under ``path`` in a manifest."""
        params: dict[str, Any] = {
            "TableName": table_name,
            "IndexName": "PathIndex",
            "KeyConditionExpression": f"partitionKeyName={manifest_id} AND sortKeyName={path}",
            "Limit": limit,
            "Select": "ALL_ATTRIBUTES",
        }
        if filter_expression:
            params["FilterExpression"] = filter_expression
        if start_key:
            params["ExclusiveStartKey"] = dict(start_key)
        return self.db.query(**params)

    def get_manifest_file(self, table_name: str, manifest_id: str, upload_id: str) -> ManifestFileItem:
        """Return one file of a manifest."""
        try:
            data = self.db.get_item(TableName=table_name, Key=_file_key(manifest_id, upload_id))
        except Exception as exc:
            raise DynamoQueryError(f"GetItem: {exc}") from exc

        raw = (data or {}).get("Item")
        if not raw:
            raise ManifestFileNotFoundError("GetItem: ManifestFile not found.")
        try:
            return ManifestFileItem.from_item(raw)
        except (TypeError, ValueError) as exc:
            raise DynamoQueryError(f"UnmarshalMap: {exc}") from exc

    def sync_files(
        self,
        manifest_id: str,
        items: Iterable[FileDTO],
        force_status: FileStatus | None,
        manifest_table_name: str,
        file_table_name: str,
    ) -> AddFilesStats:
        """Add or update files of a manifest and report the resulting statuses.

        With ``force_status`` every file is written with that status; otherwise
        the write for each file follows from its client and stored status.
        """
        try:
            self.get_manifest_by_id(manifest_table_name, manifest_id)
        except DynamoQueryError as exc:
            log.error("Manifest does not exist.", extra={"manifest_id": manifest_id})
            raise DynamoQueryError(
                f"manifest with id: {manifest_id} does not exist. original error: {exc}"
            ) from exc

        files = list(items)
        log.debug("Adding %d number of items from upload.", len(files))

        total = AddFilesStats()
        with ThreadPoolExecutor(max_workers=NR_WORKERS) as pool:
            batches = pool.map(
                lambda batch: self._sync_batch(file_table_name, manifest_id, batch, force_status),
                _chunks(files, BATCH_SIZE),
            )
            for stats in batches:
                total.merge(stats)
        return total

    def _status_for_file(self, table_name: str, manifest_id: str, upload_id: str) -> FileStatus:
        try:
            result = self.db.get_item(TableName=table_name, Key=_file_key(manifest_id, upload_id))
        except Exception as exc:
            log.error("Error getting item from dydb")
            raise DynamoQueryError("unable to check status of existing upload file") from exc

        raw = (result or {}).get("Item")
        if raw:
            return FileStatus.from_string(ManifestFileItem.from_item(raw).status)
        return FileStatus.UNKNOWN

    def _forced_request(self, manifest_id: str, file: FileDTO, status: FileStatus) -> WriteRequest:
        item = ManifestFileItem(
            manifest_id=manifest_id,
            upload_id=file.upload_id,
            file_path=file.target_path,
            file_name=file.target_name,
            status=str(status),
            merge_package_id=file.merge_package_id,
            file_type=file.file_type,
            in_progress=status.in_progress_flag(),
        )
        return WriteRequest(put_item=item.to_item())

    def _batch_write(self, request_items: Mapping[str, list[Any]], manifest_id: str) -> dict[str, list[Any]]:
        try:
            response = self.db.batch_write_item(
                RequestItems=dict(request_items),
                ReturnConsumedCapacity="NONE",
                ReturnItemCollectionMetrics="NONE",
            )
        except Exception as exc:
            log.error("Unable to Batch Write: %s", exc, extra={"manifest_id": manifest_id})
            raise DynamoQueryError(f"unable to batch write: {exc}") from exc
        return {table: list(requests) for table, requests in ((response or {}).get("UnprocessedItems") or {}).items() if requests}

    def _sync_batch(
        self,
        file_table_name: str,
        manifest_id: str,
        batch: list[FileDTO],
        force_status: FileStatus | None,
    ) -> AddFilesStats:
        requests: list[dict[str, Any]] = []
        responses: list[FileStatusDTO] = []

        for file in batch:
            log.debug("adding file: %s", file)
            if force_status is None:
                current = self._status_for_file(file_table_name, manifest_id, file.upload_id)
                request, new_status = get_write_request(manifest_id, file, current)
            else:
                request = self._forced_request(manifest_id, file, force_status)
                new_status = force_status

            if request is not None:
                requests.append(request.to_request())
            responses.append(FileStatusDTO(upload_id=file.upload_id, status=new_status))

        updated = 0
        failed: list[str] = []
        if requests:
            unprocessed = self._batch_write({file_table_name: requests}, manifest_id)
            updated += len(requests) - _count(unprocessed)

            retries = 0
            while _count(unprocessed):
                remaining = self._batch_write(unprocessed, manifest_id)
                updated += _count(unprocessed) - _count(remaining)
                unprocessed = remaining
                retries += 1
                if retries == MAX_RETRIES:
                    log.warning("Dynamodb did not ingest all the file records.")
                    break
                time.sleep(self.retry_delay * (1 + retries))

            if _count(unprocessed):
                for entry in unprocessed.get(file_table_name, []):
                    raw = (entry.get("PutRequest") or {}).get("Item") or (entry.get("DeleteRequest") or {}).get("Key") or {}
                    try:
                        failed.append(ManifestFileItem.from_item(raw).upload_id)
                    except (TypeError, ValueError) as exc:
                        log.error("Unable to UnMarshall unprocessed items. %s", exc)
                        raise DynamoQueryError(f"UnmarshalMap: {exc}") from exc
                responses = remove_failed_files_from_response(failed, responses)

        return AddFilesStats(
            nr_files_updated=updated,
            nr_files_removed=0,
            file_status=responses,
            failed_files=failed,
        )