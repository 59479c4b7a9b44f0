"""Rebuild one beatmap folder: difficulties, storyboard and assets.

Once the folder is known to exist, every failure is recorded in the result
and the remaining files are still produced.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from osu_reconstructor.assembly.beatmap import (
    assemble_beatmap,
    sanitize_file_name,
    storyboard_file_name,
)
from osu_reconstructor.assembly.indexer import Indices, index_dataset
from osu_reconstructor.assembly.storyboard import assemble_storyboard, storyboard_sources
from osu_reconstructor.encoders.osb import encode_storyboard
from osu_reconstructor.encoders.osu import encode_beatmap
from osu_reconstructor.errors import BeatmapFailure, Issue, UnknownFolderError
from osu_reconstructor.pipeline.assets import copy_assets
from osu_reconstructor.schemas.graph import StoryboardOwner
from osu_reconstructor.schemas.rows import Dataset

logger = logging.getLogger(__name__)


class FolderState(Enum):
    INIT = "init"
    BEATMAPS_ASSEMBLED = "beatmaps_assembled"
    STORYBOARD_ASSEMBLED = "storyboard_assembled"
    NO_STORYBOARD = "no_storyboard"
    ASSETS_COPIED = "assets_copied"
    DONE = "done"
    FAILED = "failed"


@dataclass
class FolderResult:
    folder_id: str
    output_path: Path
    files_written: list[str] = field(default_factory=list)
    assets_copied: int = 0
    errors: list[Issue] = field(default_factory=list)
    state: FolderState = FolderState.INIT
    storyboard_state: FolderState | None = None


def _write_text(path: Path, text: str) -> None:
    # Bytes, so line endings are exactly what the encoder produced.
    path.write_bytes(text.encode("utf-8"))


def _claim_file_name(name: str, tag: object, used: set[str]) -> str | None:
    """Reserve *name* in the folder, tagging the stem with *tag* on a clash.

    Names compare case-insensitively. Returns None when the tagged name is
    taken as well.
    """
    if name.casefold() in used:
        path = Path(name)
        name = f"{path.stem} ({tag}){path.suffix}"
        if name.casefold() in used:
            return None
    used.add(name.casefold())
    return name


def reconstruct_folder(
    folder_id: str,
    output_dir: Path,
    dataset: Dataset,
    indices: Indices | None = None,
    assets_dir: Path | None = None,
    map_extension: str = ".osu",
    storyboard_extension: str = ".osb",
) -> FolderResult:
    """Reconstruct *folder_id* into ``output_dir/folder_id``.

    Args:
        folder_id: Folder to rebuild.
        output_dir: Parent directory of the rebuilt folder.
        dataset: Loaded dataset.
        indices: Prebuilt indices over *dataset*; built on demand if omitted.
        assets_dir: Assets root holding ``{folder_id}/`` media; None skips copying.
        map_extension: Extension of difficulty files.
        storyboard_extension: Extension of the folder storyboard file.

    Returns:
        FolderResult with written files, copied asset count and every
        non-fatal issue.

    Raises:
        UnknownFolderError: The dataset has no beatmaps for *folder_id*.
    """
    if indices is None:
        indices = index_dataset(dataset)

    result = FolderResult(folder_id=folder_id, output_path=Path(output_dir) / folder_id)
    beatmap_ids = indices.folder_beatmaps.get(folder_id, ())
    if not beatmap_ids:
        # INIT -> FAILED is the only fatal transition.
        raise UnknownFolderError(folder_id)

    folder_output = result.output_path
    folder_output.mkdir(parents=True, exist_ok=True)
    result.errors.extend(indices.orphans_for(folder_id))

    used_names: set[str] = set()

    # --- Difficulties (each independent of its siblings) ---
    for beatmap_id in beatmap_ids:
        target = str(beatmap_id)
        try:
            graph = assemble_beatmap(beatmap_id, indices, map_extension)
            target = graph.file_name
            file_name = _claim_file_name(graph.file_name, beatmap_id, used_names)
            if file_name is None:
                raise ValueError(f"file name {graph.file_name!r} is already used in this folder")
            if file_name != graph.file_name:
                logger.warning(
                    "Beatmap %s: %r already written, using %r", beatmap_id, graph.file_name, file_name,
                )
                graph.file_name = file_name
            embedded = assemble_storyboard(StoryboardOwner(folder_id, beatmap_id), indices)
            _write_text(folder_output / graph.file_name, encode_beatmap(graph, embedded))
        except Exception as e:
            logger.exception("Failed to reconstruct beatmap %s in folder %s", beatmap_id, folder_id)
            result.errors.append(BeatmapFailure(target=target, reason=str(e)))
            continue
        result.files_written.append(graph.file_name)
        result.errors.extend(graph.skipped)
        if embedded is not None:
            result.errors.extend(embedded.skipped)
    result.state = FolderState.BEATMAPS_ASSEMBLED

    # --- Folder storyboards (one per source script) ---
    owner = StoryboardOwner(folder_id)
    first = indices.beatmaps[beatmap_ids[0]]
    default_name = storyboard_file_name(first, storyboard_extension)
    result.storyboard_state = FolderState.NO_STORYBOARD
    for i, source in enumerate(storyboard_sources(owner, indices)):
        storyboard = assemble_storyboard(owner, indices, default_name, source_file=source)
        result.storyboard_state = FolderState.STORYBOARD_ASSEMBLED
        result.errors.extend(storyboard.skipped)
        file_name = sanitize_file_name(storyboard.file_name) or default_name
        try:
            claimed = _claim_file_name(file_name, i, used_names)
            if claimed is None:
                raise ValueError(f"file name {file_name!r} is already used in this folder")
            _write_text(folder_output / claimed, encode_storyboard(storyboard))
            result.files_written.append(claimed)
        except Exception as e:
            logger.exception("Failed to write storyboard %s in folder %s", file_name, folder_id)
            result.errors.append(BeatmapFailure(target=file_name, reason=str(e)))
    result.state = result.storyboard_state

    # --- Assets ---
    if assets_dir is not None:
        report = copy_assets(folder_id, Path(assets_dir), folder_output)
        result.assets_copied = report.copied
        result.errors.extend(report.errors)
    result.state = FolderState.ASSETS_COPIED

    result.state = FolderState.DONE
    logger.info(
        "Folder %s: %d files, %d assets, %d issues",
        folder_id, len(result.files_written), result.assets_copied, len(result.errors),
    )
    return result
