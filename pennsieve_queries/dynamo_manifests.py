"""Manifest table queries and manifest-file listing against a DynamoDB client."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .manifest_models import ManifestFileItem, ManifestItem, ManifestStatus

log = logging.getLogger(__name__)

IN_PROGRESS_FILTER = "InProgress"


class DynamoQueryError(Exception):
    """Raised when a DynamoDB call or the decoding of its result fails."""


class ManifestNotFoundError(DynamoQueryError, LookupError):
    """Raised when no manifest exists for the requested id."""


class ManifestExistsError(DynamoQueryError):
    """Raised when a manifest with the same id is already stored."""


class ManifestQueries:
    """Queries on the manifest table and listing of manifest files.

    ``db`` is a low-level DynamoDB client (or a transaction-like object with the
    same interface) taking keyword arguments such as ``TableName`` and ``Key``
    and returning response dictionaries.
    """

    def __init__(self, db: Any) -> None:
        self.db = db

    def create_manifest(self, table_name: str, item: ManifestItem) -> None:
        """Store a new manifest; raise ManifestExistsError if the id is taken."""
        data = item.to_item()
        key = {"ManifestId": data["ManifestId"]}
        context = {
            "organization_id": item.organization_id,
            "dataset_id": item.dataset_id,
            "manifest_id": item.manifest_id,
            "user_id": item.user_id,
        }

        try:
            existing = self.db.get_item(TableName=table_name, Key=key)
        except Exception:  # a failed lookup does not stop the write
            log.debug("Lookup of existing manifest failed.", extra=context)
            existing = None
        if existing and existing.get("Item"):
            raise ManifestExistsError("manifest with provided ID already exists")

        try:
            self.db.put_item(TableName=table_name, Item=data)
        except Exception as exc:
            log.error("Error creating upload: %s", exc, extra=context)
            raise DynamoQueryError("error creating Manifest") from exc

    def get_manifest_by_id(self, table_name: str, manifest_id: str) -> ManifestItem:
        """Return the manifest with the given id."""
        try:
            data = self.db.get_item(
                TableName=table_name,
                Key={"ManifestId": {"S": manifest_id}},
            )
        except Exception as exc:
            raise DynamoQueryError(f"GetItem: {exc}") from exc

        raw = (data or {}).get("Item")
        if not raw:
            raise ManifestNotFoundError("GetItem: Manifest not found.")
        return _decode(ManifestItem, raw)

    def get_manifests_for_dataset(self, table_name: str, dataset_node_id: str) -> list[ManifestItem]:
        """Return every manifest that belongs to the dataset."""
        result = self.db.query(
            TableName=table_name,
            IndexName="DatasetManifestIndex",
            KeyConditionExpression="DatasetNodeId = :datasetValue",
            ExpressionAttributeValues={":datasetValue": {"S": dataset_node_id}},
            Select="ALL_ATTRIBUTES",
        )
        return [_decode(ManifestItem, raw) for raw in result.get("Items", [])]

    def update_manifest_status(self, table_name: str, manifest_id: str, status: ManifestStatus) -> None:
        """Set the status attribute of a manifest."""
        self.db.update_item(
            TableName=table_name,
            Key={"ManifestId": {"S": manifest_id}},
            UpdateExpression="set #status = :statusValue",
            ExpressionAttributeNames={"#status": "Status"},
            ExpressionAttributeValues={":statusValue": {"S": str(status)}},
        )

    def get_files_paginated(
        self,
        table_name: str,
        manifest_id: str,
        status: str | None,
        limit: int,
        start_key: Mapping[str, Any] | None,
    ) -> tuple[list[ManifestFileItem], dict[str, Any] | None]:
        """Return one page of manifest files and the key to continue from.

        ``status`` None lists all files; "InProgress" lists files still being
        uploaded; any other value lists files with exactly that status.
        """
        manifest_value = {":manifestValue": {"S": manifest_id}}
        if status is None:
            params: dict[str, Any] = {
                "KeyConditionExpression": "ManifestId = :manifestValue",
                "ExpressionAttributeValues": manifest_value,
                "Select": "ALL_ATTRIBUTES",
            }
        elif status == IN_PROGRESS_FILTER:
            params = {
                "IndexName": "InProgressIndex",
                "KeyConditionExpression": "ManifestId = :manifestValue",
                "ExpressionAttributeValues": manifest_value,
                "Select": "ALL_PROJECTED_ATTRIBUTES",
            }
        else:
            params = {
                "IndexName": "StatusIndex",
                "ExpressionAttributeNames": {"#S": "Status"},
                "KeyConditionExpression": "ManifestId = :manifestValue AND #S = :statusValue",
                "ExpressionAttributeValues": {
                    **manifest_value,
                    ":statusValue": {"S": status},
                },
                "Select": "ALL_PROJECTED_ATTRIBUTES",
            }
        params["TableName"] = table_name
        params["Limit"] = limit
        if start_key:
            params["ExclusiveStartKey"] = dict(start_key)

        result = self.db.query(**params)
        items = [_decode(ManifestFileItem, raw) for raw in result.get("Items", [])]
        return items, result.get("LastEvaluatedKey")

    def check_update_manifest_status(
        self,
        file_table_name: str,
        manifest_table_name: str,
        manifest_id: str,
        current_status: str,
    ) -> ManifestStatus:
        """Mark the manifest completed when no files are in progress.

        A completed manifest that has files in progress again goes back to
        uploading. Returns the status that applies after the check.
        """
        remaining, _ = self.get_files_paginated(
            file_table_name, manifest_id, IN_PROGRESS_FILTER, 1, None
        )

        if not remaining:
            new_status = ManifestStatus.COMPLETED
        elif current_status == ManifestStatus.COMPLETED.value:
            new_status = ManifestStatus.UPLOADING
        else:
            return ManifestStatus.INITIATED

        self.update_manifest_status(manifest_table_name, manifest_id, new_status)
        return new_status


def _decode(model: Any, raw: Mapping[str, Any]) -> Any:
    try:
        return model.from_item(raw)
    except (TypeError, ValueError) as exc:
        raise DynamoQueryError(f"UnmarshalMap: {exc}") from exc