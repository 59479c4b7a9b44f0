"""Tests for ReconstructConfig persistence."""

import json

from osu_reconstructor.pipeline.config import ReconstructConfig


class TestReconstructConfig:
    def test_defaults(self):
        config = ReconstructConfig()
        assert config.workers == 1
        assert config.folder_ids is None
        assert config.map_extension == ".osu"

    def test_save_load_round_trip(self, tmp_path):
        config = ReconstructConfig(folder_ids=["1 A - B"], workers=4, assets_dir=None)
        path = tmp_path / "nested" / "config.json"
        config.save(path)
        assert ReconstructConfig.load(path) == config

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"workers": 2, "learning_rate": 0.1}))
        config = ReconstructConfig.load(path)
        assert config.workers == 2
        assert config.output_dir == ReconstructConfig().output_dir
