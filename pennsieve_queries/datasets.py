"""Queries on workspace datasets and the users attached to them."""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from .dataset_settings import DataUseAgreement, DatasetStatus
from .pg_db import MultipleRowsAffectedError, PgQueries, RowNotFoundError

log = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
READY_STATE = "READY"

_DATASET_COLUMNS = (
    "id, name, state, description, updated_at, created_at, node_id,"
    " permission_bit, type, role, status, automatically_process_packages, license, tags, contributors,"
    " banner_id, readme_id, status_id, publication_status_id, size, etag, data_use_agreement_id, changelog_id"
)


class DatasetNotFoundError(RowNotFoundError):
    """Raised when no dataset matches a lookup."""

    def __init__(self, detail: str = "No rows were returned!") -> None:
        super().__init__(f"dataset was not found (error: {detail})")


class DatasetUserNotFoundError(RowNotFoundError):
    """Raised when a user has no direct role on a dataset."""

    def __init__(self, detail: str = "sql: no rows in result set") -> None:
        super().__init__(f"dataset user was not found (error: {detail})")


class DatasetType(str, Enum):
    """Kind of dataset."""

    RESEARCH = "research"
    RELEASE = "release"

    def __str__(self) -> str:
        return self.value


class Role(IntEnum):
    """Dataset role, ordered from least to most privileged."""

    NONE = 0
    VIEWER = 1
    EDITOR = 2
    MANAGER = 3
    OWNER = 4

    @property
    def label(self) -> str:
        """Lower-case name as stored in the database."""
        return self.name.lower()

    @classmethod
    def from_string(cls, value: str) -> "Role":
        """Return the role named by ``value`` (any case); raise ValueError if unknown."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"unknown dataset role: {value!r}") from None


class DbPermission(IntEnum):
    """Permission bits stored alongside dataset roles."""

    NO_PERMISSION = 0
    COLLABORATE = 1
    READ = 2
    WRITE = 4
    DELETE = 8
    ADMINISTER = 16
    OWNER = 32


@dataclass
class User:
    """The parts of a platform user that dataset queries need."""

    id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    is_super_admin: bool = False


@dataclass
class Dataset:
    """A row of the datasets table, fields in column order."""

    id: int = 0
    name: str = ""
    state: str = ""
    description: str | None = None
    updated_at: dt.datetime | None = None
    created_at: dt.datetime | None = None
    node_id: str | None = None
    permission_bit: int | None = None
    type: str = ""
    role: str | None = None
    status: str = ""
    automatically_process_packages: bool = False
    license: str | None = None
    tags: list[str] = field(default_factory=list)
    contributors: list[Any] = field(default_factory=list)
    banner_id: str | None = None
    readme_id: str | None = None
    status_id: int = 0
    publication_status_id: int | None = None
    size: int | None = None
    etag: Any = None
    data_use_agreement_id: int | None = None
    changelog_id: str | None = None


@dataclass
class DatasetUser:
    """A user's direct role on a dataset."""

    dataset_id: int
    user_id: int
    role: str
    permission_bit: int
    created_at: dt.datetime | None
    updated_at: dt.datetime | None


@dataclass
class DatasetClaim:
    """The highest role a user holds on a dataset."""

    role: Role
    node_id: str
    int_id: int


@dataclass
class CreateDatasetParams:
    """Everything needed to create a dataset."""

    name: str
    description: str = ""
    status: DatasetStatus | None = None
    automatically_process_packages: bool = False
    license: str = ""
    tags: list[str] = field(default_factory=list)
    data_use_agreement: DataUseAgreement | None = None
    type: DatasetType = DatasetType.RESEARCH


def dataset_role_to_permission(role: Role) -> DbPermission:
    """Permission bit that goes with a dataset role."""
    return {
        Role.NONE: DbPermission.NO_PERMISSION,
        Role.VIEWER: DbPermission.READ,
        Role.EDITOR: DbPermission.DELETE,
        Role.MANAGER: DbPermission.ADMINISTER,
        Role.OWNER: DbPermission.OWNER,
    }.get(role, DbPermission.NO_PERMISSION)


def new_dataset_node_id() -> str:
    """Generate a fresh dataset node id."""
    return f"N:dataset:{uuid.uuid4()}"


class DatasetQueries(PgQueries):
    """Creation and lookup of datasets and of dataset users."""

    def create_dataset(self, params: CreateDatasetParams) -> Dataset:
        """Insert a dataset in the READY state and return it as stored."""
        if not params.name:
            raise ValueError("dataset name cannot be empty or null")
        if len(params.name) > MAX_NAME_LENGTH:
            raise ValueError("dataset name cannot exceed 255 characters")
        if params.status is None:
            raise ValueError("dataset status is required")
        if params.data_use_agreement is None:
            raise ValueError("data use agreement is required")

        try:
            self.get_dataset_by_name(params.name)
        except DatasetNotFoundError:
            pass
        except Exception as exc:
            raise RuntimeError(
                f'a dataset with the name "{params.name}" already exists (error: {exc})'
            ) from exc

        statement = (
            "INSERT INTO datasets "
            "(name, node_id, state, description, automatically_process_packages,"
            " status_id, license, tags, data_use_agreement_id, type)"
            " VALUES(%s, %s, %s, %s, %s, %s, NULLIF(%s, ''), %s, %s, %s);"
        )
        try:
            self._exec(
                statement,
                params.name,
                new_dataset_node_id(),
                READY_STATE,
                params.description,
                params.automatically_process_packages,
                params.status.id,
                params.license,
                "{" + ",".join(params.tags) + "}",
                params.data_use_agreement.id,
                str(params.type),
            )
        except Exception as exc:
            raise RuntimeError(f"database error on insert: {exc}") from exc

        try:
            return self.get_dataset_by_name(params.name)
        except Exception as exc:
            raise RuntimeError(f"database error on query: {exc}") from exc

    def _get_dataset(self, column: str, value: Any) -> Dataset:
        query = f"SELECT {_DATASET_COLUMNS} FROM datasets WHERE {column}=%s;"
        try:
            row = self._query_row(query, value)
        except RowNotFoundError as exc:
            raise DatasetNotFoundError() from exc
        return Dataset(*row)

    def get_dataset_by_id(self, dataset_id: int) -> Dataset:
        """Return the dataset with this integer id."""
        return self._get_dataset("id", int(dataset_id))

    def get_dataset_by_node_id(self, node_id: str) -> Dataset:
        """Return the dataset with this node id."""
        return self._get_dataset("node_id", node_id)

    def get_dataset_by_name(self, name: str) -> Dataset:
        """Return the dataset with this name."""
        return self._get_dataset("name", name)

    def get_datasets(self, organization_id: int) -> list[Dataset]:
        """Return the name and state of every dataset in the current schema."""
        rows = self._query("SELECT name, state FROM datasets")
        return [Dataset(name=name, state=state) for name, state in rows]

    def get_dataset_claim(self, user: User, dataset_node_id: str, organization_id: int) -> DatasetClaim:
        """Return the highest of the dataset, team and user roles that ``user`` holds."""
        if user.is_super_admin:
            log.warning("Not handling super-user authorization at this point.")

        org = int(organization_id)
        try:
            dataset_id, maybe_role = self._query_row(
                f'SELECT id, role FROM "{org}".datasets WHERE node_id=%s;', dataset_node_id
            )
        except RowNotFoundError:
            log.error("No rows were returned!")
            raise

        roles = [Role.NONE if maybe_role is None else Role.from_string(maybe_role)]

        team = f'"{org}".dataset_team'
        team_query = (
            f"SELECT {team}.role FROM pennsieve.team_user JOIN {team} "
            f"ON pennsieve.team_user.team_id = {team}.team_id "
            "WHERE user_id=%s AND dataset_id=%s"
        )
        dataset_user = f'"{org}".dataset_user'
        user_query = f"SELECT {dataset_user}.role FROM {dataset_user} WHERE user_id=%s AND dataset_id=%s"
        rows = self._query(
            f"{team_query} UNION {user_query};", user.id, dataset_id, user.id, dataset_id
        )
        roles.extend(Role.from_string(row[0]) for row in rows)

        return DatasetClaim(role=max(roles), node_id=dataset_node_id, int_id=int(dataset_id))

    def get_dataset_user(self, dataset: Dataset, user: User) -> DatasetUser:
        """Return the user's direct role on the dataset."""
        query = (
            "SELECT dataset_id, user_id, role, permission_bit, created_at, updated_at "
            "FROM dataset_user WHERE dataset_id=%s AND user_id=%s"
        )
        try:
            row = self._query_row(query, dataset.id, user.id)
        except RowNotFoundError as exc:
            raise DatasetUserNotFoundError(str(exc)) from exc
        return DatasetUser(*row)

    def add_dataset_user(self, dataset: Dataset, user: User, role: Role) -> DatasetUser:
        """Give the user ``role`` on the dataset unless they already have a role there."""
        try:
            return self.get_dataset_user(dataset, user)
        except DatasetUserNotFoundError:
            pass

        self._exec(
            "INSERT INTO dataset_user (dataset_id, user_id, role, permission_bit) VALUES (%s, %s, %s, %s)",
            dataset.id,
            user.id,
            role.label,
            int(dataset_role_to_permission(role)),
        )
        return self.get_dataset_user(dataset, user)

    def set_updated_at(self, dataset_id: int, timestamp: dt.datetime) -> None:
        """Set the updated_at column of exactly one dataset."""
        try:
            affected = self._exec("UPDATE datasets SET updated_at=%s WHERE id=%s;", timestamp, dataset_id)
        except Exception as exc:
            log.error("Error updating the updated_at column: %s", exc)
            raise

        if affected == 0:
            error = DatasetNotFoundError(f"no dataset with id {dataset_id}")
            log.error("%s", error)
            raise error
        if affected != 1:
            multiple = MultipleRowsAffectedError(f"{affected} rows affected, expected 1")
            log.error("%s", multiple)
            raise multiple