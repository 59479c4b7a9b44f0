"""Reconstruction configuration: every run setting in one dataclass."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path


@dataclass
class ReconstructConfig:
    """Settings for a reconstruction run."""

    # Locations
    dataset_dir: str = "data/dataset"
    assets_dir: str | None = "data/assets"  # None = skip asset copying
    output_dir: str = "output/reconstructed"

    # Selection
    folder_ids: list[str] | None = None  # None = every folder in the dataset
    limit: int | None = None  # first N folders (sorted) when folder_ids is None

    # Execution
    workers: int = 1  # folders reconstructed concurrently

    # Output naming
    map_extension: str = ".osu"
    storyboard_extension: str = ".osb"

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(self), indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> ReconstructConfig:
        """Load config from JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        # Only pass known fields to handle forward/backward compat
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
