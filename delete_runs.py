#!/usr/bin/env python3
"""
Prune recorded orrery telemetry runs from data/runs/.

Only directories that look like runs (holding timeseries.csv or events.csv)
are touched. The newest runs can be kept with --keep-latest, in which case
last_run.txt is pointed at the newest kept run instead of being removed.
"""

import argparse
import shutil
from pathlib import Path

RUN_FILES = ("timeseries.csv", "events.csv")
LAST_RUN_FILE = "last_run.txt"


def find_run_dirs(runs_dir: Path) -> list[Path]:
    """Run directories, oldest first (run ids start with a timestamp)."""
    return sorted(
        d for d in runs_dir.iterdir()
        if d.is_dir() and any((d / name).exists() for name in RUN_FILES)
    )


def _update_marker(runs_dir: Path, kept: list[Path], keep_last_run_file: bool) -> None:
    marker = runs_dir / LAST_RUN_FILE
    if kept:
        marker.write_text(kept[-1].name, encoding="utf-8")
        print(f"{LAST_RUN_FILE} now points at {kept[-1].name}")
    elif not keep_last_run_file and marker.exists():
        try:
            marker.unlink()
            print(f"Deleted: {marker.name}")
        except OSError as e:
            print(f"Error deleting {marker.name}: {e}")


def delete_all_runs(
    runs_dir: Path,
    dry_run: bool = False,
    keep_last_run_file: bool = False,
    skip_confirm: bool = False,
    keep_latest: int = 0,
) -> int:
    """
    Delete recorded runs, optionally keeping the newest ones.

    Parameters
    ----------
    runs_dir : Path
        Directory holding the runs (e.g. data/runs)
    dry_run : bool
        Only list what would be deleted
    keep_last_run_file : bool
        Leave last_run.txt alone when every run is deleted
    skip_confirm : bool
        Do not ask before deleting
    keep_latest : int
        Number of newest runs to keep

    Returns
    -------
    int
        Number of run directories deleted.
    """
    if not runs_dir.exists():
        print(f"Error: Directory {runs_dir} does not exist.")
        return 0

    run_dirs = find_run_dirs(runs_dir)
    keep_latest = max(0, keep_latest)
    kept = run_dirs[len(run_dirs) - keep_latest:] if keep_latest else []
    doomed = run_dirs[: len(run_dirs) - len(kept)]
    if not doomed:
        print(f"No runs to delete in {runs_dir}")
        return 0

    print(f"Deleting {len(doomed)} of {len(run_dirs)} runs:")
    for run_dir in doomed:
        print(f"  - {run_dir.name}")

    if dry_run:
        print("\n[DRY RUN] Nothing was deleted.")
        return 0

    if not skip_confirm:
        response = input(f"\nDelete these {len(doomed)} runs? (yes/no): ")
        if response.lower() not in ("yes", "y"):
            print("Deletion cancelled.")
            return 0

    deleted_count = 0
    failed = []
    for run_dir in doomed:
        try:
            shutil.rmtree(run_dir)
            deleted_count += 1
        except OSError as e:
            print(f"Error deleting {run_dir.name}: {e}")
            failed.append(run_dir)

    # A run that could not be removed still exists and may be the newest one.
    _update_marker(runs_dir, sorted(kept + failed), keep_last_run_file)
    print(f"\nSummary: {deleted_count} runs deleted, {len(failed)} failed, {len(kept)} kept.")
    return deleted_count


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Delete recorded orrery runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python delete_runs.py --dry-run
  python delete_runs.py --keep-latest 3
  python delete_runs.py --yes
        """,
    )
    parser.add_argument("--runs-dir", type=Path, default=Path("data/runs"), help="Runs directory (default: data/runs)")
    parser.add_argument("--dry-run", action="store_true", help="List runs without deleting them")
    parser.add_argument("--keep-latest", type=int, default=0, metavar="N", help="Keep the N newest runs")
    parser.add_argument(
        "--keep-last-run-file",
        action="store_true",
        help="Keep last_run.txt even when every run is deleted",
    )
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args(argv)
    delete_all_runs(
        args.runs_dir,
        dry_run=args.dry_run,
        keep_last_run_file=args.keep_last_run_file,
        skip_confirm=args.yes,
        keep_latest=args.keep_latest,
    )


if __name__ == "__main__":
    main()
