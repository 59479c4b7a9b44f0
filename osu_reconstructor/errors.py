"""Exceptions and non-fatal issue records raised during reconstruction.

Only a missing folder (or a malformed dataset at load time) aborts work.
Everything else is captured as an issue record and reported in the folder
result so callers can decide whether partial output is acceptable.
"""

from dataclasses import dataclass


class ReconstructionError(Exception):
    """Base class for fatal reconstruction errors."""


class DatasetError(ReconstructionError):
    """A dataset table is missing or malformed."""


class UnknownFolderError(ReconstructionError, LookupError):
    """The requested folder id has no beatmap rows."""

    def __init__(self, folder_id: str):
        super().__init__(f"Unknown folder: {folder_id}")
        self.folder_id = folder_id


class UnknownBeatmapError(ReconstructionError, LookupError):
    """The requested beatmap id is not in the dataset."""

    def __init__(self, beatmap_id: int):
        super().__init__(f"Unknown beatmap: {beatmap_id}")
        self.beatmap_id = beatmap_id


# --- Non-fatal issues ---------------------------------------------------------


@dataclass(frozen=True)
class OrphanRow:
    """A row whose foreign key points at nothing; the row was excluded."""

    table: str
    key: str  # name of the dangling foreign key column
    value: object
    folder_id: str | None = None

    def __str__(self) -> str:
        return f"orphan {self.table} row: {self.key}={self.value!r} not found"


@dataclass(frozen=True)
class SkippedObject:
    """A hit object that could not be assembled and was dropped."""

    beatmap_id: int
    hit_object_id: int
    reason: str

    def __str__(self) -> str:
        return f"beatmap {self.beatmap_id}: skipped hit object {self.hit_object_id} ({self.reason})"


@dataclass(frozen=True)
class ControlPointGap:
    """A slider whose control point sequence is not a gap-free 0..N run."""

    beatmap_id: int
    hit_object_id: int
    sequences: tuple[int, ...]

    def __str__(self) -> str:
        return (
            f"beatmap {self.beatmap_id}: slider {self.hit_object_id} has "
            f"non-contiguous control points {list(self.sequences)}"
        )


@dataclass(frozen=True)
class SkippedCommand:
    """A storyboard command that could not be placed in the command tree."""

    element_id: int
    command_id: int
    reason: str

    def __str__(self) -> str:
        return f"element {self.element_id}: skipped command {self.command_id} ({self.reason})"


@dataclass(frozen=True)
class AssetCopyError:
    """One asset file that failed to copy."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"failed to copy asset {self.path}: {self.reason}"


@dataclass(frozen=True)
class BeatmapFailure:
    """A beatmap or storyboard file that failed to assemble, encode or write."""

    target: str
    reason: str

    def __str__(self) -> str:
        return f"failed to write {self.target}: {self.reason}"


Issue = OrphanRow | SkippedObject | ControlPointGap | SkippedCommand | AssetCopyError | BeatmapFailure
