# pennsieve_queries

A query layer over two kinds of storage:

* a DynamoDB table store holding upload **manifests** and their
  **manifest files**, and
* a PostgreSQL database holding **datasets**, **dataset users**,
  **contributors**, **dataset releases**, organisation defaults for datasets,
  dataset storage sizes and **feature flags**.

The query classes build the requests and run them on an object you pass in.
They have no third-party dependencies.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## What you pass in

* For the table store: a low-level DynamoDB client (or any object with the
  same interface) whose `get_item`, `put_item`, `query`, `update_item` and
  `batch_write_item` methods take keyword arguments such as `TableName`,
  `Key` and `Item`, and return response dictionaries. Items are in the
  DynamoDB attribute-value format (`{"S": "..."}`, `{"N": "..."}`, ...);
  `to_attribute` and `from_attribute` in `pennsieve_queries.manifest_models`
  convert between that format and Python values.
* For the relational store: a DB-API connection or transaction whose
  `cursor()` accepts `%s` placeholders and reports `description`, `rowcount`
  and `fetchall()`.

## Manifests and manifest files

`ManifestQueries` (in `pennsieve_queries.dynamo_manifests`) creates and reads
manifests (`ManifestItem`), lists the manifests of a dataset, updates a
manifest's `ManifestStatus`, lists manifest files page by page, and with
`check_update_manifest_status` marks a manifest completed once no files are
in progress (or sets a completed manifest back to uploading).

`DynamoQueries` (in `pennsieve_queries.manifest_files`) adds the
manifest-file operations: `update_file_table_status`, `get_files_for_path`,
`get_manifest_file` and `sync_files`. `sync_files` checks that the manifest
exists, splits the files into batches of 25, works through them with two
threads, decides for each file what to write from its client status and its
stored status (or writes every file with a forced status), and retries
unprocessed writes up to five times. It returns an `AddFilesStats` with the
number of files updated, the status of each file and the ids of files that
could not be written.

```python
from pennsieve_queries.manifest_files import DynamoQueries
from pennsieve_queries.manifest_models import FileDTO, FileStatus, ManifestItem

queries = DynamoQueries(client)
queries.create_manifest("upload-table", ManifestItem(manifest_id="0001", dataset_node_id="N:Dataset:0001"))

stats = queries.sync_files(
    "0001",
    [FileDTO(upload_id="1", target_name="test1", status=FileStatus.LOCAL)],
    None,
    "upload-table",
    "upload-file-table",
)
print(stats.nr_files_updated)
```

`get_write_request` and `remove_failed_files_from_response` in
`pennsieve_queries.write_requests` expose the per-file sync decision on its
own; a client status with no rule raises `UnhandledStatusError`.

Failures raise `DynamoQueryError`, or one of its subclasses
`ManifestNotFoundError`, `ManifestExistsError` and
`ManifestFileNotFoundError`.

## Relational queries

`PgStore` (in `pennsieve_queries.pg_store`) combines all relational query
groups over a single connection: `DatasetQueries`, `DatasetReleaseQueries`,
`ContributorQueries`, `DatasetSettingsQueries` and `FeatureFlagQueries`, plus
the dataset–contributor link.

```python
from pennsieve_queries.pg_store import PgStore

store = PgStore(connection)
store = store.with_org(3)            # sets search_path to the organisation schema
dataset = store.get_dataset_by_name("My Dataset")
flags = store.get_enabled_feature_flags(402)
```

`with_tx` returns a store running on a transaction object instead.

Lookups that find nothing raise `RowNotFoundError` or one of its subclasses
`DatasetNotFoundError`, `DatasetUserNotFoundError`,
`ContributorNotFoundError` and `DatasetReleaseNotFoundError`. Feature-flag
failures raise `FeatureFlagQueryError`; `set_updated_at` raises
`MultipleRowsAffectedError` when more than one row changes.

## Connection settings

`env_dsn()` in `pennsieve_queries.pg_db` builds a libpq connection string
from the `POSTGRES_HOST`, `POSTGRES_PORT`, `POSTGRES_USER`,
`POSTGRES_PASSWORD`, `PENNSIEVE_DB` and `POSTGRES_SSL_MODE` environment
variables, with local defaults for each; `build_dsn` builds one from explicit
values.

## What the package does not do

It does not open database connections or create DynamoDB clients, does not
create or migrate tables, and does not obtain cloud authentication tokens.
It has no command-line interface.