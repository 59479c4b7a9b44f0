"""Reconstruct many folders from one loaded dataset."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from tqdm import tqdm

from osu_reconstructor.assembly.indexer import Indices, index_dataset
from osu_reconstructor.errors import UnknownFolderError
from osu_reconstructor.pipeline.config import ReconstructConfig
from osu_reconstructor.pipeline.folder import FolderResult, FolderState, reconstruct_folder
from osu_reconstructor.schemas.rows import Dataset

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    succeeded: int = 0
    failed: int = 0
    files_written: int = 0
    assets_copied: int = 0
    results: list[FolderResult] = field(default_factory=list)  # sorted by folder id
    errors: list[str] = field(default_factory=list)


def select_folder_ids(
    indices: Indices, folder_ids: list[str] | None = None, limit: int | None = None,
) -> list[str]:
    """The requested folder ids, or every known folder id; truncated to *limit*."""
    ids = list(folder_ids) if folder_ids else indices.folder_ids()
    if limit is not None and limit >= 0:
        ids = ids[:limit]
    return ids


def reconstruct_all(
    dataset: Dataset,
    output_dir: Path,
    folder_ids: list[str] | None = None,
    limit: int | None = None,
    workers: int = 1,
    assets_dir: Path | None = None,
    map_extension: str = ".osu",
    storyboard_extension: str = ".osb",
) -> BatchResult:
    """Reconstruct folders on a bounded thread pool.

    Folders only share the read-only dataset and indices and write disjoint
    output directories, so no locking is needed. An unknown folder counts as
    failed; it never stops the batch.
    """
    indices = index_dataset(dataset)
    ids = select_folder_ids(indices, folder_ids, limit)
    result = BatchResult()
    logger.info("Reconstructing %d folder(s) with %d worker(s)", len(ids), workers)

    def _one(folder_id: str) -> FolderResult:
        return reconstruct_folder(
            folder_id,
            output_dir,
            dataset,
            indices=indices,
            assets_dir=assets_dir,
            map_extension=map_extension,
            storyboard_extension=storyboard_extension,
        )

    with ThreadPoolExecutor(max_workers=max(workers, 1)) as pool, \
            tqdm(total=len(ids), desc="Reconstructing folders") as pbar:
        futures = {pool.submit(_one, folder_id): folder_id for folder_id in ids}
        for future in as_completed(futures):
            folder_id = futures[future]
            try:
                folder_result = future.result()
            except Exception as e:
                if isinstance(e, UnknownFolderError):
                    logger.warning("%s", e)
                else:
                    logger.exception("Failed to reconstruct folder %s", folder_id)
                result.failed += 1
                result.errors.append(f"{folder_id}: {e}")
                result.results.append(FolderResult(
                    folder_id=folder_id,
                    output_path=Path(output_dir) / folder_id,
                    state=FolderState.FAILED,
                ))
            else:
                result.succeeded += 1
                result.files_written += len(folder_result.files_written)
                result.assets_copied += folder_result.assets_copied
                result.errors.extend(f"{folder_id}: {issue}" for issue in folder_result.errors)
                result.results.append(folder_result)
            pbar.update(1)

    result.results.sort(key=lambda r: r.folder_id)
    logger.info(
        "Batch complete: %d succeeded, %d failed, %d files, %d assets",
        result.succeeded, result.failed, result.files_written, result.assets_copied,
    )
    return result


def run_from_config(config: ReconstructConfig) -> BatchResult:
    """Load the dataset named by *config* and reconstruct the selected folders."""
    from osu_reconstructor.storage.reader import load_dataset

    dataset_dir = Path(config.dataset_dir)
    # Pushing the folder filter into the reader keeps memory proportional to the selection.
    folder_ids = config.folder_ids
    if folder_ids is None and config.limit is not None:
        from osu_reconstructor.storage.reader import load_folder_ids

        folder_ids = load_folder_ids(dataset_dir)[: config.limit]

    dataset = load_dataset(dataset_dir, folder_ids=folder_ids)
    return reconstruct_all(
        dataset,
        Path(config.output_dir),
        folder_ids=folder_ids,
        limit=config.limit,
        workers=config.workers,
        assets_dir=Path(config.assets_dir) if config.assets_dir else None,
        map_extension=config.map_extension,
        storyboard_extension=config.storyboard_extension,
    )
