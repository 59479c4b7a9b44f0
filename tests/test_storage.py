"""Tests for the Parquet dataset writer and reader: row groups, filters, validation."""

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from osu_reconstructor.errors import DatasetError
from osu_reconstructor.schemas.rows import (
    BeatmapRow,
    Dataset,
    HitObjectRow,
    StoryboardCommandRow,
    StoryboardElementRow,
    TimingPointRow,
)
from osu_reconstructor.storage.reader import load_dataset, load_folder_ids, table_files
from osu_reconstructor.storage.writer import TABLE_SCHEMAS, write_dataset


def _make_dataset(folders=("a", "b", "c"), n_objects: int = 5) -> Dataset:
    ds = Dataset()
    for i, folder in enumerate(folders):
        ds.beatmaps.append(BeatmapRow(id=i, folder_id=folder, title=f"Song {folder}", slider_multiplier=1.8))
        ds.timing_points.append(TimingPointRow(beatmap_id=i, folder_id=folder, time=0, beat_length=333.5))
        for j in range(n_objects):
            ds.hit_objects.append(HitObjectRow(
                id=i * 100 + j, beatmap_id=i, folder_id=folder,
                time=j * 250, object_type="circle", index=j,
            ))
    ds.storyboard_elements.append(
        StoryboardElementRow(id=1, folder_id="a", element_type="sprite", path="x.png")
    )
    ds.storyboard_commands.append(StoryboardCommandRow(
        id=1, element_id=1, folder_id="a", command_type="loop", start_time=0, loop_count=3,
    ))
    return ds


class TestWriteDataset:
    def test_one_row_group_per_folder(self, tmp_path):
        written = write_dataset(_make_dataset(), tmp_path)
        (path,) = written["hit_objects"]
        assert pq.ParquetFile(path).metadata.num_row_groups == 3

    def test_every_table_written(self, tmp_path):
        written = write_dataset(_make_dataset(), tmp_path)
        assert set(written) == set(TABLE_SCHEMAS)
        # Empty tables still get a file with the schema.
        (breaks,) = written["breaks"]
        assert pq.read_table(breaks).num_rows == 0

    def test_split_at_max_bytes(self, tmp_path):
        written = write_dataset(_make_dataset(), tmp_path, max_file_bytes=1)
        assert [p.name for p in written["hit_objects"]] == [
            "hit_objects_0000.parquet",
            "hit_objects_0001.parquet",
            "hit_objects_0002.parquet",
        ]

    def test_schema_applied(self, tmp_path):
        written = write_dataset(_make_dataset(), tmp_path)
        schema = pq.read_schema(written["timing_points"][0])
        assert schema.field("beat_length").type == pa.float64()
        assert schema.field("folder_id").type == pa.string()


class TestLoadDataset:
    def test_round_trip(self, tmp_path):
        original = _make_dataset()
        write_dataset(original, tmp_path)
        loaded = load_dataset(tmp_path)
        assert loaded.beatmaps == original.beatmaps
        assert len(loaded.hit_objects) == 15
        assert loaded.storyboard_commands[0].parent_id is None
        assert loaded.storyboard_commands[0].loop_count == 3
        assert loaded.timing_points[0].beat_length == 333.5

    def test_folder_filter(self, tmp_path):
        write_dataset(_make_dataset(), tmp_path, max_file_bytes=1)
        loaded = load_dataset(tmp_path, folder_ids=["b"])
        assert [b.folder_id for b in loaded.beatmaps] == ["b"]
        assert {ho.folder_id for ho in loaded.hit_objects} == {"b"}
        assert loaded.storyboard_elements == []

    def test_empty_filter_loads_nothing(self, tmp_path):
        write_dataset(_make_dataset(), tmp_path)
        assert load_dataset(tmp_path, folder_ids=[]).beatmaps == []

    def test_single_file_layout(self, tmp_path):
        for name, schema in TABLE_SCHEMAS.items():
            if name == "breaks":
                continue
            pq.write_table(schema.empty_table(), tmp_path / f"{name}.parquet")
        pq.write_table(
            pa.Table.from_pylist([{"id": 7, "folder_id": "z"}]),
            tmp_path / "beatmaps.parquet",
        )
        assert table_files(tmp_path, "beatmaps") == [tmp_path / "beatmaps.parquet"]
        loaded = load_dataset(tmp_path)
        # Missing columns fall back to defaults; the optional table is empty.
        assert loaded.beatmaps == [BeatmapRow(id=7, folder_id="z")]
        assert loaded.breaks == []

    def test_unknown_columns_ignored_and_nulls_defaulted(self, tmp_path):
        write_dataset(_make_dataset(("a",)), tmp_path)
        for path in tmp_path.glob("beatmaps_*.parquet"):
            path.unlink()
        pq.write_table(
            pa.Table.from_pylist([
                {"id": 1, "folder_id": "a", "mode": None, "extra_column": "x"},
            ]),
            tmp_path / "beatmaps_0000.parquet",
        )
        (bm,) = load_dataset(tmp_path).beatmaps
        assert bm.mode == 0

    def test_missing_required_table(self, tmp_path):
        write_dataset(_make_dataset(), tmp_path)
        for path in tmp_path.glob("hit_objects_*.parquet"):
            path.unlink()
        with pytest.raises(DatasetError, match="hit_objects"):
            load_dataset(tmp_path)

    def test_missing_required_column(self, tmp_path):
        write_dataset(_make_dataset(), tmp_path)
        for path in tmp_path.glob("timing_points_*.parquet"):
            path.unlink()
        pq.write_table(
            pa.Table.from_pylist([{"beatmap_id": 0, "folder_id": "a", "time": 0.0}]),
            tmp_path / "timing_points.parquet",
        )
        with pytest.raises(DatasetError, match="beat_length"):
            load_dataset(tmp_path)

    def test_null_required_value(self, tmp_path):
        write_dataset(_make_dataset(("a",)), tmp_path)
        for path in tmp_path.glob("timing_points_*.parquet"):
            path.unlink()
        pq.write_table(
            pa.Table.from_pylist(
                [{"beatmap_id": 0, "folder_id": "a", "time": 0.0, "beat_length": None}],
                schema=pa.schema([
                    ("beatmap_id", pa.int64()), ("folder_id", pa.string()),
                    ("time", pa.float64()), ("beat_length", pa.float64()),
                ]),
            ),
            tmp_path / "timing_points.parquet",
        )
        with pytest.raises(DatasetError, match="timing_points"):
            load_dataset(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(DatasetError):
            load_dataset(tmp_path / "nope")


class TestLoadFolderIds:
    def test_sorted_distinct(self, tmp_path):
        write_dataset(_make_dataset(("c", "a", "b")), tmp_path)
        assert load_folder_ids(tmp_path) == ["a", "b", "c"]

    def test_missing_beatmaps_table(self, tmp_path):
        with pytest.raises(DatasetError):
            load_folder_ids(tmp_path)
