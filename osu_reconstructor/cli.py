"""Command-line interface for the osu! folder reconstructor."""

import argparse
import logging
from pathlib import Path


def cmd_reconstruct(args: argparse.Namespace) -> None:
    from osu_reconstructor.pipeline.batch import run_from_config
    from osu_reconstructor.pipeline.config import ReconstructConfig

    config = ReconstructConfig()
    if args.config:
        config = ReconstructConfig.load(Path(args.config))
    if args.dataset:
        config.dataset_dir = args.dataset
    if args.assets:
        config.assets_dir = args.assets
    if args.no_assets:
        config.assets_dir = None
    if args.output:
        config.output_dir = args.output
    if args.folder_id:
        config.folder_ids = args.folder_id
    if args.limit is not None:
        config.limit = args.limit
    if args.workers:
        config.workers = args.workers

    result = run_from_config(config)
    print(
        f"Reconstructed {result.succeeded} folder(s) to {config.output_dir} "
        f"({result.failed} failed, {result.files_written} files, "
        f"{result.assets_copied} assets, {len(result.errors)} issues)"
    )
    for error in result.errors:
        print(f"  {error}")
    if result.failed:
        raise SystemExit(1)


def cmd_list_folders(args: argparse.Namespace) -> None:
    from osu_reconstructor.storage.reader import load_folder_ids

    for folder_id in load_folder_ids(Path(args.dataset)):
        print(folder_id)


def cmd_slice(args: argparse.Namespace) -> None:
    from osu_reconstructor.storage.reader import load_dataset, load_folder_ids
    from osu_reconstructor.storage.writer import write_dataset

    folder_ids = args.folder_id
    if not folder_ids:
        folder_ids = load_folder_ids(Path(args.dataset))
        if args.limit is not None:
            folder_ids = folder_ids[: args.limit]

    dataset = load_dataset(Path(args.dataset), folder_ids=folder_ids)
    written = write_dataset(dataset, Path(args.output))
    n_files = sum(len(paths) for paths in written.values())
    print(f"Wrote {len(dataset.beatmaps)} beatmaps from {len(folder_ids)} folder(s) "
          f"to {args.output} ({n_files} files)")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="osu-reconstructor",
        description="Rebuild osu! beatmap folders from the normalized dataset",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command")

    # reconstruct
    rec = sub.add_parser("reconstruct", help="Rebuild beatmap folders from Parquet")
    rec.add_argument("--config", default=None, help="ReconstructConfig JSON path")
    rec.add_argument("--dataset", default=None, help="Dataset directory (default: data/dataset)")
    rec.add_argument("--assets", default=None, help="Assets root (default: data/assets)")
    rec.add_argument("--no-assets", action="store_true", help="Skip asset copying")
    rec.add_argument("--output", default=None, help="Output directory (default: output/reconstructed)")
    rec.add_argument("--folder-id", action="append", default=None,
                     help="Folder to rebuild; repeat for several (default: all)")
    rec.add_argument("--limit", type=int, default=None,
                     help="Rebuild only the first N folders")
    rec.add_argument("--workers", type=int, default=None,
                     help="Folders reconstructed concurrently (default: 1)")

    # list-folders
    ls = sub.add_parser("list-folders", help="List folder ids in the dataset")
    ls.add_argument("--dataset", default="data/dataset")

    # slice
    sl = sub.add_parser("slice", help="Copy a subset of folders into a new dataset")
    sl.add_argument("--dataset", default="data/dataset")
    sl.add_argument("--output", required=True, help="Directory for the sliced dataset")
    sl.add_argument("--folder-id", action="append", default=None,
                    help="Folder to keep; repeat for several")
    sl.add_argument("--limit", type=int, default=None,
                    help="Keep only the first N folders when no --folder-id is given")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "reconstruct": cmd_reconstruct,
        "list-folders": cmd_list_folders,
        "slice": cmd_slice,
    }

    handler = commands.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
