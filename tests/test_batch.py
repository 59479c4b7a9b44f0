"""Tests for batch reconstruction and config-driven runs."""

from osu_reconstructor.assembly.indexer import index_dataset
from osu_reconstructor.pipeline.batch import reconstruct_all, run_from_config, select_folder_ids
from osu_reconstructor.pipeline.config import ReconstructConfig
from osu_reconstructor.pipeline.folder import FolderState
from osu_reconstructor.schemas.rows import BeatmapRow, Dataset, HitObjectRow, TimingPointRow
from osu_reconstructor.storage.writer import write_dataset


def _make_dataset(n_folders: int = 3) -> Dataset:
    ds = Dataset()
    for i in range(n_folders):
        folder = f"folder{i}"
        ds.beatmaps.append(BeatmapRow(id=i, folder_id=folder, osu_file=f"map{i}.osu"))
        ds.timing_points.append(TimingPointRow(beatmap_id=i, folder_id=folder, time=0, beat_length=400))
        ds.hit_objects.append(
            HitObjectRow(id=i, beatmap_id=i, folder_id=folder, time=100, object_type="circle")
        )
    return ds


class TestSelectFolderIds:
    def test_all_sorted(self):
        indices = index_dataset(_make_dataset())
        assert select_folder_ids(indices) == ["folder0", "folder1", "folder2"]

    def test_limit(self):
        indices = index_dataset(_make_dataset())
        assert select_folder_ids(indices, limit=2) == ["folder0", "folder1"]

    def test_explicit_ids_kept_in_order(self):
        indices = index_dataset(_make_dataset())
        assert select_folder_ids(indices, ["folder2", "folder0"]) == ["folder2", "folder0"]


class TestReconstructAll:
    def test_every_folder(self, tmp_path):
        result = reconstruct_all(_make_dataset(), tmp_path)
        assert result.succeeded == 3
        assert result.failed == 0
        assert result.files_written == 3
        assert [r.folder_id for r in result.results] == ["folder0", "folder1", "folder2"]
        assert (tmp_path / "folder1" / "map1.osu").exists()

    def test_parallel_matches_serial(self, tmp_path):
        reconstruct_all(_make_dataset(), tmp_path / "serial", workers=1)
        reconstruct_all(_make_dataset(), tmp_path / "parallel", workers=3)
        for i in range(3):
            name = f"folder{i}/map{i}.osu"
            assert (tmp_path / "serial" / name).read_bytes() == (tmp_path / "parallel" / name).read_bytes()

    def test_unknown_folder_counts_as_failed(self, tmp_path):
        result = reconstruct_all(_make_dataset(), tmp_path, folder_ids=["folder0", "nope"])
        assert result.succeeded == 1
        assert result.failed == 1
        failed = [r for r in result.results if r.state is FolderState.FAILED]
        assert [r.folder_id for r in failed] == ["nope"]
        assert result.errors == ["nope: Unknown folder: nope"]

    def test_issues_prefixed_with_folder(self, tmp_path):
        ds = _make_dataset(1)
        ds.hit_objects.append(
            HitObjectRow(id=50, beatmap_id=0, folder_id="folder0", time=0, object_type="slider")
        )
        result = reconstruct_all(ds, tmp_path)
        assert result.succeeded == 1
        assert result.errors == [
            "folder0: beatmap 0: skipped hit object 50 (missing slider data)"
        ]


class TestRunFromConfig:
    def test_loads_and_reconstructs(self, tmp_path):
        write_dataset(_make_dataset(), tmp_path / "dataset")
        config = ReconstructConfig(
            dataset_dir=str(tmp_path / "dataset"),
            assets_dir=None,
            output_dir=str(tmp_path / "out"),
            limit=2,
        )
        result = run_from_config(config)
        assert result.succeeded == 2
        assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["folder0", "folder1"]

    def test_folder_ids_from_config(self, tmp_path):
        write_dataset(_make_dataset(), tmp_path / "dataset")
        config = ReconstructConfig(
            dataset_dir=str(tmp_path / "dataset"),
            assets_dir=None,
            output_dir=str(tmp_path / "out"),
            folder_ids=["folder2"],
        )
        result = run_from_config(config)
        assert [r.folder_id for r in result.results] == ["folder2"]
