"""Manifest and manifest-file records as stored in DynamoDB."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

IN_PROGRESS_MARKER = "x"


class FileStatus(str, Enum):
    """Upload status of a single manifest file."""

    LOCAL = "Local"
    REGISTERED = "Registered"
    IMPORTED = "Imported"
    FINALIZED = "Finalized"
    VERIFIED = "Verified"
    FAILED = "Failed"
    REMOVED = "Removed"
    UNKNOWN = "Unknown"
    CHANGED = "Changed"
    UPLOADED = "Uploaded"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "FileStatus":
        """Map a stored status string to a status; unrecognised strings map to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    def in_progress_flag(self) -> str:
        """Value of the InProgress attribute for this status; empty when the upload is done."""
        if self in (FileStatus.IMPORTED, FileStatus.VERIFIED):
            return ""
        return IN_PROGRESS_MARKER


class ManifestStatus(str, Enum):
    """Status of a whole manifest."""

    INITIATED = "Initiated"
    UPLOADING = "Uploading"
    COMPLETED = "Completed"

    def __str__(self) -> str:
        return self.value


@dataclass
class FileDTO:
    """A file as described by the client when it is added to a manifest."""

    upload_id: str
    target_path: str = ""
    target_name: str = ""
    status: FileStatus = FileStatus.UNKNOWN
    merge_package_id: str = ""
    file_type: str = ""


@dataclass
class FileStatusDTO:
    """The status reported back to the client for one file."""

    upload_id: str
    status: FileStatus


@dataclass
class AddFilesStats:
    """Outcome of synchronising a set of files with the manifest file table."""

    nr_files_updated: int = 0
    nr_files_removed: int = 0
    file_status: list[FileStatusDTO] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)

    def merge(self, other: "AddFilesStats") -> "AddFilesStats":
        """Add the counts and lists of ``other`` to this object and return it."""
        self.nr_files_updated += other.nr_files_updated
        self.nr_files_removed += other.nr_files_removed
        self.file_status.extend(other.file_status)
        self.failed_files.extend(other.failed_files)
        return self


def to_attribute(value: Any) -> dict[str, Any]:
    """Encode a Python value as a DynamoDB attribute value."""
    if value is None:
        return {"NULL": True}
    if isinstance(value, bool):
        return {"BOOL": value}
    if isinstance(value, str):
        return {"S": value}
    if isinstance(value, (int, float)):
        return {"N": str(value)}
    if isinstance(value, (bytes, bytearray)):
        return {"B": bytes(value)}
    if isinstance(value, (set, frozenset)):
        if value and all(isinstance(v, str) for v in value):
            return {"SS": sorted(value)}
        if value and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
            return {"NS": [str(v) for v in sorted(value)]}
        raise TypeError("sets must be non-empty and hold only strings or only numbers")
    if isinstance(value, Mapping):
        return {"M": {str(k): to_attribute(v) for k, v in value.items()}}
    if isinstance(value, (list, tuple)):
        return {"L": [to_attribute(v) for v in value]}
    raise TypeError(f"cannot encode {type(value).__name__} as a DynamoDB attribute")


def _number(text: str) -> int | float:
    try:
        return int(text)
    except ValueError:
        return float(text)


def from_attribute(attribute: Mapping[str, Any]) -> Any:
    """Decode a DynamoDB attribute value into a Python value."""
    if len(attribute) != 1:
        raise ValueError(f"malformed attribute value: {attribute!r}")
    (kind, payload), = attribute.items()
    if kind == "S":
        return payload
    if kind == "N":
        return _number(payload)
    if kind == "BOOL":
        return bool(payload)
    if kind == "NULL":
        return None
    if kind == "B":
        return bytes(payload)
    if kind == "SS":
        return set(payload)
    if kind == "NS":
        return {_number(v) for v in payload}
    if kind == "L":
        return [from_attribute(v) for v in payload]
    if kind == "M":
        return {k: from_attribute(v) for k, v in payload.items()}
    raise ValueError(f"unknown attribute type: {kind!r}")


def _read(item: Mapping[str, Any], name: str, default: Any) -> Any:
    raw = item.get(name)
    if raw is None:
        return default
    value = from_attribute(raw)
    return default if value is None else value


@dataclass
class ManifestFileItem:
    """A row of the manifest file table."""

    manifest_id: str
    upload_id: str
    file_path: str = ""
    file_name: str = ""
    status: str = ""
    merge_package_id: str = ""
    file_type: str = ""
    in_progress: str = ""

    def to_item(self) -> dict[str, dict[str, Any]]:
        """Encode as a DynamoDB item; InProgress is left out when empty."""
        item = {
            "ManifestId": to_attribute(self.manifest_id),
            "UploadId": to_attribute(self.upload_id),
            "FilePath": to_attribute(self.file_path),
            "FileName": to_attribute(self.file_name),
            "Status": to_attribute(self.status),
            "MergePackageId": to_attribute(self.merge_package_id),
            "FileType": to_attribute(self.file_type),
        }
        if self.in_progress:
            item["InProgress"] = to_attribute(self.in_progress)
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "ManifestFileItem":
        """Decode a DynamoDB item; missing attributes become empty strings."""
        return cls(
            manifest_id=str(_read(item, "ManifestId", "")),
            upload_id=str(_read(item, "UploadId", "")),
            file_path=str(_read(item, "FilePath", "")),
            file_name=str(_read(item, "FileName", "")),
            status=str(_read(item, "Status", "")),
            merge_package_id=str(_read(item, "MergePackageId", "")),
            file_type=str(_read(item, "FileType", "")),
            in_progress=str(_read(item, "InProgress", "")),
        )


@dataclass
class ManifestItem:
    """A row of the manifest table."""

    manifest_id: str
    dataset_id: int = 0
    dataset_node_id: str = ""
    organization_id: int = 0
    user_id: int = 0
    status: str = ""
    date_created: int = 0

    def to_item(self) -> dict[str, dict[str, Any]]:
        """Encode as a DynamoDB item."""
        return {
            "ManifestId": to_attribute(self.manifest_id),
            "DatasetId": to_attribute(self.dataset_id),
            "DatasetNodeId": to_attribute(self.dataset_node_id),
            "OrganizationId": to_attribute(self.organization_id),
            "UserId": to_attribute(self.user_id),
            "Status": to_attribute(self.status),
            "DateCreated": to_attribute(self.date_created),
        }

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "ManifestItem":
        """Decode a DynamoDB item; missing attributes take their zero values."""
        return cls(
            manifest_id=str(_read(item, "ManifestId", "")),
            dataset_id=int(_read(item, "DatasetId", 0)),
            dataset_node_id=str(_read(item, "DatasetNodeId", "")),
            organization_id=int(_read(item, "OrganizationId", 0)),
            user_id=int(_read(item, "UserId", 0)),
            status=str(_read(item, "Status", "")),
            date_created=int(_read(item, "DateCreated", 0)),
        )