"""Decide which DynamoDB write a manifest file needs during synchronisation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from .manifest_models import (
    FileDTO,
    FileStatus,
    FileStatusDTO,
    ManifestFileItem,
    IN_PROGRESS_MARKER,
    to_attribute,
)

log = logging.getLogger(__name__)


class UnhandledStatusError(ValueError):
    """Raised when a client file status has no synchronisation rule."""


@dataclass
class WriteRequest:
    """A single put or delete for a batch write."""

    put_item: dict[str, Any] | None = None
    delete_key: dict[str, Any] | None = None

    def to_request(self) -> dict[str, Any]:
        """Encode as a BatchWriteItem request entry."""
        if self.put_item is not None:
            return {"PutRequest": {"Item": self.put_item}}
        if self.delete_key is not None:
            return {"DeleteRequest": {"Key": self.delete_key}}
        raise ValueError("write request has neither an item nor a key")


def _put(item: ManifestFileItem, status: str, *, in_progress: bool) -> WriteRequest:
    item.status = status
    item.in_progress = IN_PROGRESS_MARKER if in_progress else ""
    return WriteRequest(put_item=item.to_item())


def get_write_request(
    manifest_id: str, file: FileDTO, current_status: FileStatus
) -> tuple[WriteRequest | None, FileStatus]:
    """Return the write needed for ``file`` and the status to report to the client.

    ``current_status`` is the status already stored for the file, UNKNOWN if absent.
    """
    item = ManifestFileItem(
        manifest_id=manifest_id,
        upload_id=file.upload_id,
        file_path=file.target_path,
        file_name=file.target_name,
        status=FileStatus.REGISTERED.value,
        merge_package_id=file.merge_package_id,
        file_type=file.file_type,
        in_progress=IN_PROGRESS_MARKER,
    )
    client = file.status

    if client is FileStatus.REMOVED:
        if current_status is FileStatus.FINALIZED:
            return _put(item, FileStatus.VERIFIED.value, in_progress=False), FileStatus.VERIFIED
        if current_status in (FileStatus.IMPORTED, FileStatus.VERIFIED):
            return None, current_status
        key = {
            "ManifestId": to_attribute(manifest_id),
            "UploadId": to_attribute(file.upload_id),
        }
        return WriteRequest(delete_key=key), FileStatus.REMOVED

    if client in (FileStatus.LOCAL, FileStatus.FAILED):
        if current_status is FileStatus.FINALIZED:
            return _put(item, FileStatus.VERIFIED.value, in_progress=False), FileStatus.VERIFIED
        if current_status in (FileStatus.REGISTERED, FileStatus.FAILED, FileStatus.UNKNOWN):
            return _put(item, FileStatus.REGISTERED.value, in_progress=True), FileStatus.REGISTERED
        return None, current_status

    if client is FileStatus.IMPORTED:
        if current_status is FileStatus.FINALIZED:
            return _put(item, FileStatus.VERIFIED.value, in_progress=False), FileStatus.VERIFIED
        return None, current_status

    if client in (FileStatus.REGISTERED, FileStatus.CHANGED, FileStatus.UNKNOWN):
        if current_status is FileStatus.REGISTERED:
            return _put(item, FileStatus.REGISTERED.value, in_progress=True), FileStatus.REGISTERED
        if current_status in (FileStatus.FINALIZED, FileStatus.IMPORTED, FileStatus.VERIFIED):
            return _put(item, current_status.value, in_progress=False), FileStatus.VERIFIED
        return None, current_status

    if client in (FileStatus.FINALIZED, FileStatus.VERIFIED):
        return None, current_status

    log.error(
        "Unhandled case in getAction for file.",
        extra={"manifest_id": manifest_id, "upload_id": file.upload_id},
    )
    raise UnhandledStatusError(f"unhandled client status {client.value!r} for upload {file.upload_id}")


def remove_failed_files_from_response(
    failed_ids: Iterable[str], responses: Iterable[FileStatusDTO]
) -> list[FileStatusDTO]:
    """Drop the responses for files whose write did not succeed."""
    failed = set(failed_ids)
    return [response for response in responses if response.upload_id not in failed]