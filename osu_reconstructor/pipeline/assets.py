"""Copy a folder's media files from the assets root into its output folder."""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from osu_reconstructor.errors import AssetCopyError

logger = logging.getLogger(__name__)


@dataclass
class AssetCopyReport:
    copied: int = 0
    errors: list[AssetCopyError] = field(default_factory=list)


def copy_assets(folder_id: str, assets_root: Path, destination: Path) -> AssetCopyReport:
    """Copy every file under ``assets_root/folder_id`` into *destination*.

    Relative paths are preserved. A missing source folder copies nothing and
    is not an error; individual copy failures are recorded and skipped.
    """
    report = AssetCopyReport()
    source = Path(assets_root) / folder_id
    if not source.is_dir():
        logger.debug("No assets for folder %s in %s", folder_id, assets_root)
        return report

    for path in sorted(source.rglob("*")):
        if not path.is_file():
            continue
        rel = path.relative_to(source)
        target = Path(destination) / rel
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)
            report.copied += 1
        except OSError as e:
            logger.warning("Failed to copy asset %s: %s", path, e)
            report.errors.append(AssetCopyError(path=rel.as_posix(), reason=str(e)))

    logger.debug("Copied %d assets for folder %s", report.copied, folder_id)
    return report
