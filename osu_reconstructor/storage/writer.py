"""Write dataset tables to Parquet files, one row group per folder."""

import logging
from dataclasses import asdict
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from osu_reconstructor.schemas.rows import Dataset

logger = logging.getLogger(__name__)

# Maximum Parquet file size in bytes before starting a new file.
MAX_FILE_BYTES: int = 1_000_000_000  # 1 GB

# --- Arrow schemas -----------------------------------------------------------

BEATMAPS_SCHEMA = pa.schema(
    [
        pa.field("id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("osu_file", pa.string()),
        pa.field("format_version", pa.int32()),
        pa.field("audio_file", pa.string()),
        pa.field("audio_lead_in", pa.int32()),
        pa.field("preview_time", pa.int32()),
        pa.field("countdown", pa.int32()),
        pa.field("sample_set", pa.string()),
        pa.field("stack_leniency", pa.float64()),
        pa.field("mode", pa.int8()),
        pa.field("letterbox_in_breaks", pa.bool_()),
        pa.field("widescreen_storyboard", pa.bool_()),
        pa.field("epilepsy_warning", pa.bool_()),
        pa.field("special_style", pa.bool_()),
        pa.field("bookmarks", pa.string()),
        pa.field("distance_spacing", pa.float64()),
        pa.field("beat_divisor", pa.int32()),
        pa.field("grid_size", pa.int32()),
        pa.field("timeline_zoom", pa.float64()),
        pa.field("title", pa.string()),
        pa.field("title_unicode", pa.string()),
        pa.field("artist", pa.string()),
        pa.field("artist_unicode", pa.string()),
        pa.field("creator", pa.string()),
        pa.field("version", pa.string()),
        pa.field("source", pa.string()),
        pa.field("tags", pa.string()),
        pa.field("beatmap_id", pa.int64()),
        pa.field("beatmap_set_id", pa.int64()),
        pa.field("hp_drain_rate", pa.float64()),
        pa.field("circle_size", pa.float64()),
        pa.field("overall_difficulty", pa.float64()),
        pa.field("approach_rate", pa.float64()),
        pa.field("slider_multiplier", pa.float64()),
        pa.field("slider_tick_rate", pa.float64()),
        pa.field("background_file", pa.string()),
    ]
)

TIMING_POINTS_SCHEMA = pa.schema(
    [
        pa.field("beatmap_id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("time", pa.float64()),
        pa.field("beat_length", pa.float64()),
        pa.field("index", pa.int32()),
        pa.field("meter", pa.int32()),
        pa.field("sample_set", pa.int8()),
        pa.field("sample_index", pa.int32()),
        pa.field("volume", pa.int32()),
        pa.field("uninherited", pa.bool_()),
        pa.field("effects", pa.int32()),
    ]
)

HIT_OBJECTS_SCHEMA = pa.schema(
    [
        pa.field("id", pa.int64()),
        pa.field("beatmap_id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("time", pa.float64()),
        pa.field("object_type", pa.string()),
        pa.field("index", pa.int32()),
        pa.field("x", pa.int32()),
        pa.field("y", pa.int32()),
        pa.field("new_combo", pa.bool_()),
        pa.field("combo_skip", pa.int8()),
        pa.field("hit_sound", pa.int8()),
        pa.field("end_time", pa.float64()),
        pa.field("sample_set", pa.int8()),
        pa.field("addition_set", pa.int8()),
        pa.field("sample_index", pa.int32()),
        pa.field("sample_volume", pa.int32()),
        pa.field("sample_filename", pa.string()),
    ]
)

SLIDER_DATA_SCHEMA = pa.schema(
    [
        pa.field("hit_object_id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("curve_type", pa.string()),
        pa.field("repeat_count", pa.int32()),
        pa.field("length", pa.float64()),
        pa.field("edge_sounds", pa.string()),
        pa.field("edge_sets", pa.string()),
    ]
)

SLIDER_CONTROL_POINTS_SCHEMA = pa.schema(
    [
        pa.field("hit_object_id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("sequence", pa.int32()),
        pa.field("x", pa.float64()),
        pa.field("y", pa.float64()),
    ]
)

STORYBOARD_ELEMENTS_SCHEMA = pa.schema(
    [
        pa.field("id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("element_type", pa.string()),
        pa.field("path", pa.string()),
        pa.field("beatmap_id", pa.int64()),
        pa.field("source_file", pa.string()),
        pa.field("index", pa.int32()),
        pa.field("layer", pa.string()),
        pa.field("origin", pa.string()),
        pa.field("x", pa.float64()),
        pa.field("y", pa.float64()),
        pa.field("frame_count", pa.int32()),
        pa.field("frame_delay", pa.float64()),
        pa.field("loop_type", pa.string()),
        pa.field("time", pa.float64()),
        pa.field("volume", pa.int32()),
    ]
)

STORYBOARD_COMMANDS_SCHEMA = pa.schema(
    [
        pa.field("id", pa.int64()),
        pa.field("element_id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("command_type", pa.string()),
        pa.field("start_time", pa.float64()),
        pa.field("parent_id", pa.int64()),
        pa.field("index", pa.int32()),
        pa.field("easing", pa.int32()),
        pa.field("end_time", pa.float64()),
        pa.field("start_value", pa.string()),
        pa.field("end_value", pa.string()),
        pa.field("loop_count", pa.int32()),
        pa.field("trigger_name", pa.string()),
        pa.field("group_number", pa.int32()),
    ]
)

BREAKS_SCHEMA = pa.schema(
    [
        pa.field("beatmap_id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("start_time", pa.float64()),
        pa.field("end_time", pa.float64()),
    ]
)

COMBO_COLOURS_SCHEMA = pa.schema(
    [
        pa.field("beatmap_id", pa.int64()),
        pa.field("folder_id", pa.string()),
        pa.field("red", pa.int32()),
        pa.field("green", pa.int32()),
        pa.field("blue", pa.int32()),
        pa.field("index", pa.int32()),
        pa.field("kind", pa.string()),
        pa.field("name", pa.string()),
    ]
)

TABLE_SCHEMAS: dict[str, pa.Schema] = {
    "beatmaps": BEATMAPS_SCHEMA,
    "hit_objects": HIT_OBJECTS_SCHEMA,
    "timing_points": TIMING_POINTS_SCHEMA,
    "storyboard_elements": STORYBOARD_ELEMENTS_SCHEMA,
    "storyboard_commands": STORYBOARD_COMMANDS_SCHEMA,
    "slider_control_points": SLIDER_CONTROL_POINTS_SCHEMA,
    "slider_data": SLIDER_DATA_SCHEMA,
    "breaks": BREAKS_SCHEMA,
    "combo_colours": COMBO_COLOURS_SCHEMA,
}


class _RollingWriter:
    """Numbered ``{prefix}_NNNN.parquet`` files, rolled over at a size limit."""

    def __init__(self, output_dir: Path, prefix: str, schema: pa.Schema, max_file_bytes: int):
        self.output_dir = output_dir
        self.prefix = prefix
        self.schema = schema
        self.max_file_bytes = max_file_bytes
        self.paths: list[Path] = []
        self._writer: pq.ParquetWriter | None = None

    def write(self, table: pa.Table) -> None:
        if self._writer is None:
            path = self.output_dir / f"{self.prefix}_{len(self.paths):04d}.parquet"
            self._writer = pq.ParquetWriter(path, self.schema, compression="snappy")
            self.paths.append(path)
        # One write_table call is one row group.
        self._writer.write_table(table)
        size = self.paths[-1].stat().st_size
        if size >= self.max_file_bytes:
            self.close()
            logger.debug("Closed %s (%d bytes)", self.paths[-1].name, size)

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None


def _write_folder_groups(
    tables_by_folder: dict[str, pa.Table],
    output_dir: Path,
    prefix: str,
    schema: pa.Schema,
    max_file_bytes: int = MAX_FILE_BYTES,
) -> list[Path]:
    """Write one row group per folder, in folder order; return the files written.

    A table with no rows still gets one file holding just the schema.
    """
    files = _RollingWriter(output_dir, prefix, schema, max_file_bytes)
    try:
        for folder_id in sorted(tables_by_folder):
            table = tables_by_folder[folder_id]
            if table.num_rows:
                files.write(table)
        if not files.paths:
            files.write(schema.empty_table())
    finally:
        files.close()
    return files.paths

# --- Public API --------------------------------------------------------------

def write_dataset(
    dataset: Dataset,
    output_dir: Path,
    max_file_bytes: int = MAX_FILE_BYTES,
) -> dict[str, list[Path]]:
    """Write every dataset table to ``{table}_NNNN.parquet`` files.

    Each folder_id gets its own row group so that filtered loads can skip
    other folders. When a Parquet file exceeds *max_file_bytes*
    (default 1 GB), a new numbered file is started.

    Parameters
    ----------
    dataset:
        Dataset to write.
    output_dir:
        Directory to write output files into. Created if it doesn't exist.
    max_file_bytes:
        Maximum size in bytes per Parquet file before splitting.

    Returns
    -------
    Mapping of table name to the files written for it. An empty table is
    written as a single file with no rows.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written: dict[str, list[Path]] = {}
    for name, schema in TABLE_SCHEMAS.items():
        rows = getattr(dataset, name)

        # Accumulate rows grouped by folder_id
        by_folder: dict[str, list[dict]] = {}
        for row in rows:
            by_folder.setdefault(row.folder_id, []).append(asdict(row))

        tables = {
            folder: pa.Table.from_pylist(records, schema=schema)
            for folder, records in by_folder.items()
        }
        written[name] = _write_folder_groups(tables, output_dir, name, schema, max_file_bytes)

    logger.info(
        "Wrote %d tables (%d files) for %d beatmaps to %s",
        len(written), sum(len(v) for v in written.values()), len(dataset.beatmaps), output_dir,
    )
    return written
