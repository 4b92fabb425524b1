"""Analyze a recorded orrery run and generate diagnostic figures."""
from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path
from typing import Dict, List

import numpy as np

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt


TIMESERIES_FILENAME = "timeseries.csv"
EVENTS_FILENAME = "events.csv"
META_FILENAME = "meta.json"
FIGS_SUBDIR = "figs"
TEXT_COLUMNS = {"mode", "tier"}
FRAME_BUDGET_MS = 1000.0 / 45.0


def load_timeseries(path: Path) -> Dict[str, np.ndarray]:
    with path.open("r", newline="") as fh:
        reader = csv.DictReader(fh)
        columns: Dict[str, List[object]] = {name: [] for name in reader.fieldnames or []}
        for row in reader:
            for key, value in row.items():
                if key is None:
                    continue
                columns.setdefault(key, []).append(value if key in TEXT_COLUMNS else float(value))
    return {
        key: np.asarray(values, dtype=object if key in TEXT_COLUMNS else float)
        for key, values in columns.items()
    }


def load_events(path: Path) -> List[dict]:
    with path.open("r", newline="") as fh:
        reader = csv.DictReader(fh)
        events: List[dict] = []
        for row in reader:
            if not row:
                continue
            event = {
                "t": float(row["t"]),
                "type": row["type"],
                "subject": row.get("subject", ""),
            }
            details_raw = row.get("details", "")
            if details_raw:
                try:
                    event["details"] = json.loads(details_raw)
                except json.JSONDecodeError:
                    event["details"] = details_raw
            events.append(event)
    return events


def ensure_fig_dir(run_dir: Path) -> Path:
    fig_dir = run_dir / FIGS_SUBDIR
    fig_dir.mkdir(parents=True, exist_ok=True)
    return fig_dir


def summarize_events(events: List[dict]) -> Dict[str, int]:
    summary: Dict[str, int] = {"oracle_failure": 0, "degrade": 0, "capability": 0, "cinematic": 0}
    for event in events:
        if event["type"] in summary:
            summary[event["type"]] += 1
    return summary


def frame_summary(ts: Dict[str, np.ndarray]) -> Dict[str, float]:
    frame_ms = ts.get("frame_ms", np.array([]))
    frame_ms = frame_ms[frame_ms > 0] if frame_ms.size else frame_ms
    if not frame_ms.size:
        return {"frames": 0, "mean_ms": 0.0, "p95_ms": 0.0, "fps": 0.0, "over_budget": 0.0}
    mean_ms = float(frame_ms.mean())
    return {
        "frames": int(frame_ms.size),
        "mean_ms": mean_ms,
        "p95_ms": float(np.percentile(frame_ms, 95)),
        "fps": 1000.0 / mean_ms if mean_ms > 0 else 0.0,
        "over_budget": float(np.mean(frame_ms > FRAME_BUDGET_MS)),
    }


def plot_frame_time(fig_dir: Path, ts: Dict[str, np.ndarray], events: List[dict]) -> None:
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.plot(ts["t"], ts["frame_ms"], color="#4dabf7", lw=0.8, alpha=0.6, label="Frame")
    if "smoothed_ms" in ts:
        ax.plot(ts["t"], ts["smoothed_ms"], color="#ffa94d", lw=1.5, label="Smoothed")
    ax.axhline(FRAME_BUDGET_MS, color="#d9480f", linestyle="--", alpha=0.6, label="Budget")
    for event in events:
        if event["type"] == "degrade":
            ax.axvline(event["t"], color="#9775fa", linestyle=":", alpha=0.7, label="Degrade")
    # one legend entry per label; every degrade line shares one
    by_label = dict(zip(*reversed(ax.get_legend_handles_labels())))
    if by_label:
        ax.legend(list(by_label.values()), list(by_label.keys()))
    ax.set_xlabel("t [s]")
    ax.set_ylabel("Frame time [ms]")
    ax.set_title("Frame time")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(fig_dir / "frame_time.png", dpi=150)
    plt.close(fig)


def plot_instant(fig_dir: Path, ts: Dict[str, np.ndarray]) -> None:
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.plot(ts["t"], ts["instant_days"], color="#94d82d")
    ax.set_xlabel("t [s]")
    ax.set_ylabel("Days since J2000")
    ax.set_title("Simulated date over real time")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(fig_dir / "instant.png", dpi=150)
    plt.close(fig)


def print_summary(
    run_dir: Path,
    meta: dict,
    frames: Dict[str, float],
    event_summary: Dict[str, int],
) -> None:
    print(f"Run: {run_dir.name}")
    if meta.get("start_instant"):
        print(f" Start: {meta['start_instant']} ({meta.get('ephemeris', '?')} ephemeris)")
    print(f" Frames logged: {frames['frames']}")
    print(f" Mean frame time: {frames['mean_ms']:.2f} ms ({frames['fps']:.1f} fps)")
    print(f" p95 frame time: {frames['p95_ms']:.2f} ms")
    print(f" Over budget: {frames['over_budget'] * 100:.1f} %")
    print(
        " Event summary:" +
        ", ".join(f" {etype}: {count}" for etype, count in event_summary.items())
    )


def resolve_run_dir(run_dir: str | None, base_runs_dir: Path) -> Path | None:
    if run_dir:
        run_path = Path(run_dir)
        if not run_path.is_dir():
            run_path = base_runs_dir / run_dir
        return run_path
    last_run_file = base_runs_dir / "last_run.txt"
    if not last_run_file.exists():
        return None
    return base_runs_dir / last_run_file.read_text(encoding="utf-8").strip()


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Analyze a recorded run and create figures.")
    parser.add_argument("run_dir", nargs="?", help="Path to a specific run directory")
    parser.add_argument(
        "--runs-dir",
        type=Path,
        default=Path("data") / "runs",
        help="Directory holding the runs (default: data/runs)",
    )
    args = parser.parse_args(argv)

    run_path = resolve_run_dir(args.run_dir, args.runs_dir)
    if run_path is None:
        parser.error("No run given and last_run.txt is missing.")
    if not run_path.is_dir():
        parser.error(f"Could not find run directory: {run_path}")

    meta_path = run_path / META_FILENAME
    ts_path = run_path / TIMESERIES_FILENAME
    ev_path = run_path / EVENTS_FILENAME

    if not ts_path.exists() or not ev_path.exists():
        parser.error("Run directory is missing timeseries.csv or events.csv.")

    meta: dict = {}
    if meta_path.exists():
        with meta_path.open("r", encoding="utf-8") as fh:
            meta = json.load(fh)

    ts = load_timeseries(ts_path)
    events = load_events(ev_path)

    if not ts or not ts.get("t", np.array([])).size:
        parser.error("timeseries.csv is empty; nothing to analyze.")

    fig_dir = ensure_fig_dir(run_path)
    plot_frame_time(fig_dir, ts, events)
    plot_instant(fig_dir, ts)

    print_summary(run_path, meta, frame_summary(ts), summarize_events(events))


if __name__ == "__main__":
    main()
