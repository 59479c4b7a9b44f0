"""Load dataset tables from Parquet into row dataclasses."""

import logging
from dataclasses import MISSING, fields
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from osu_reconstructor.errors import DatasetError
from osu_reconstructor.schemas.rows import OPTIONAL_TABLES, TABLES, Dataset

logger = logging.getLogger(__name__)


def table_files(dataset_dir: Path, table: str) -> list[Path]:
    """Files holding *table*: chunked ``{table}_NNNN.parquet`` or a single ``{table}.parquet``."""
    dataset_dir = Path(dataset_dir)
    files = sorted(dataset_dir.glob(f"{table}_[0-9]*.parquet"))
    if not files:
        single = dataset_dir / f"{table}.parquet"
        if single.exists():
            files = [single]
    return files


def _read_records(files: list[Path], table: str, folder_ids: list[str] | None,
                  columns: list[str] | None = None) -> tuple[list[str], list[dict]]:
    """Read *files* with an optional folder filter; return (column names, records)."""
    filters = [("folder_id", "in", folder_ids)] if folder_ids is not None else None
    column_names: list[str] = []
    records: list[dict] = []
    for path in files:
        try:
            arrow_table = pq.read_table(path, columns=columns, filters=filters)
        except (pa.ArrowException, OSError) as e:
            raise DatasetError(f"Cannot read {table} from {path}: {e}") from e
        for name in arrow_table.column_names:
            if name not in column_names:
                column_names.append(name)
        records.extend(arrow_table.to_pylist())
    return column_names, records


def _required_columns(row_type: type) -> set[str]:
    return {
        f.name for f in fields(row_type)
        if f.default is MISSING and f.default_factory is MISSING
    }


def _to_rows(table: str, row_type: type, column_names: list[str], records: list[dict]) -> list:
    missing = _required_columns(row_type) - set(column_names)
    if missing:
        raise DatasetError(f"Table {table} is missing required column(s): {', '.join(sorted(missing))}")

    known = {f.name for f in fields(row_type)}
    rows = []
    for i, record in enumerate(records):
        # Nulls fall back to the dataclass default; unknown columns are ignored.
        values = {k: v for k, v in record.items() if k in known and v is not None}
        try:
            rows.append(row_type(**values))
        except TypeError as e:
            raise DatasetError(f"Table {table}, row {i}: {e}") from e
    return rows


def load_dataset(dataset_dir: Path, folder_ids: list[str] | None = None) -> Dataset:
    """Load every dataset table from *dataset_dir*.

    Args:
        dataset_dir: Directory of Parquet files written by the dataset builder
            (or by :func:`osu_reconstructor.storage.writer.write_dataset`).
        folder_ids: Restrict loading to these folders. The filter is pushed
            into the Parquet read so other folders' row groups are skipped.

    Raises:
        DatasetError: A required table or column is missing, a required
            value is null, or a file cannot be read.
    """
    dataset_dir = Path(dataset_dir)
    if not dataset_dir.is_dir():
        raise DatasetError(f"Dataset directory not found: {dataset_dir}")

    dataset = Dataset()
    if folder_ids is not None and not folder_ids:
        return dataset
    id_filter = sorted(set(folder_ids)) if folder_ids is not None else None

    for table, row_type in TABLES.items():
        files = table_files(dataset_dir, table)
        if not files:
            if table in OPTIONAL_TABLES:
                logger.debug("Optional table %s not present in %s", table, dataset_dir)
                continue
            raise DatasetError(f"Required table {table} not found in {dataset_dir}")
        column_names, records = _read_records(files, table, id_filter)
        setattr(dataset, table, _to_rows(table, row_type, column_names, records))
        logger.debug("Loaded %d %s rows from %d file(s)", len(records), table, len(files))

    logger.info(
        "Loaded dataset from %s: %d beatmaps, %d hit objects, %d storyboard elements",
        dataset_dir, len(dataset.beatmaps), len(dataset.hit_objects), len(dataset.storyboard_elements),
    )
    return dataset


def load_folder_ids(dataset_dir: Path) -> list[str]:
    """Sorted distinct folder ids in the beatmaps table."""
    dataset_dir = Path(dataset_dir)
    files = table_files(dataset_dir, "beatmaps")
    if not files:
        raise DatasetError(f"Required table beatmaps not found in {dataset_dir}")
    _, records = _read_records(files, "beatmaps", None, columns=["folder_id"])
    return sorted({r["folder_id"] for r in records if r["folder_id"] is not None})
