"""Telemetry run logging for the orrery frame loop."""
from __future__ import annotations

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from .config import TELEMETRY_CFG, TelemetryCfg


class TelemetryLogger:
    """Buffered logger that stores frame telemetry to CSV files.

    Parameters
    ----------
    root_dir:
        Root directory where run folders should be created. Defaults to
        :attr:`TelemetryCfg.root_dir`.
    run_id:
        Optional custom run identifier. If omitted a timestamp based
        identifier in the form ``YYYYmmdd_HHMMSS_run`` is used.
    cfg:
        Flush thresholds for the time series and event buffers.
    """

    TIMESERIES_HEADER = [
        "t",
        "frame_ms",
        "smoothed_ms",
        "instant_days",
        "speed",
        "mode",
        "tier",
        "stale",
    ]
    EVENTS_HEADER = ["t", "type", "subject", "details"]

    def __init__(
        self,
        root_dir: str | Path | None = None,
        run_id: Optional[str] = None,
        *,
        cfg: TelemetryCfg = TELEMETRY_CFG,
    ) -> None:
        self.root_dir = Path(root_dir if root_dir is not None else cfg.root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        base = run_id or f"{timestamp}_run"
        candidate_id = base
        suffix = 1
        while (self.root_dir / candidate_id).exists():
            candidate_id = f"{base}_{suffix:02d}"
            suffix += 1

        self.run_id = candidate_id
        self.run_dir = self.root_dir / self.run_id
        self.run_dir.mkdir(parents=True, exist_ok=False)

        self.timeseries_path = self.run_dir / "timeseries.csv"
        self.events_path = self.run_dir / "events.csv"
        self.meta_path = self.run_dir / "meta.json"

        self._ts_file = self.timeseries_path.open("w", newline="", encoding="utf-8")
        self._ts_file.write(",".join(self.TIMESERIES_HEADER) + "\n")
        self._ev_file = self.events_path.open("w", newline="", encoding="utf-8")
        self._ev_file.write(",".join(self.EVENTS_HEADER) + "\n")

        self._ts_buffer: list[str] = []
        self._ev_buffer: list[str] = []
        self._ts_threshold = max(1, cfg.timeseries_flush_threshold)
        self._ev_threshold = max(1, cfg.events_flush_threshold)
        self._started = time.perf_counter()
        self._closed = False

        (self.root_dir / "last_run.txt").write_text(self.run_id, encoding="utf-8")

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._started

    def write_meta(self, meta: dict) -> None:
        with self.meta_path.open("w", encoding="utf-8") as fh:
            json.dump(meta, fh, indent=2, sort_keys=True, default=str)

    def log_ts(self, values: Sequence[object]) -> None:
        """Append one time series row; ``t`` is prepended automatically."""

        row = [self.elapsed, *values]
        self._ts_buffer.append(",".join(self._format_value(v) for v in row))
        if len(self._ts_buffer) >= self._ts_threshold:
            self._flush_timeseries()

    def log_event(self, event_type: str, subject: str = "", details: object = None) -> None:
        details_text = "" if details is None else json.dumps(details, sort_keys=True, default=str)
        row = [
            self._format_value(self.elapsed),
            self._quote(event_type),
            self._quote(subject),
            self._quote(details_text),
        ]
        self._ev_buffer.append(",".join(row))
        if len(self._ev_buffer) >= self._ev_threshold:
            self._flush_events()

    def close(self) -> None:
        if self._closed:
            return
        self._flush_timeseries()
        self._flush_events()
        self._ts_file.close()
        self._ev_file.close()
        self._closed = True

    def _flush_timeseries(self) -> None:
        if self._ts_buffer:
            self._ts_file.write("\n".join(self._ts_buffer) + "\n")
            self._ts_file.flush()
            self._ts_buffer.clear()

    def _flush_events(self) -> None:
        if self._ev_buffer:
            self._ev_file.write("\n".join(self._ev_buffer) + "\n")
            self._ev_file.flush()
            self._ev_buffer.clear()

    @staticmethod
    def _format_value(value: object) -> str:
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float)):
            return f"{value:.10g}"
        return str(value)

    @staticmethod
    def _quote(text: str) -> str:
        if any(ch in text for ch in ',"\n'):
            return '"' + text.replace('"', '""') + '"'
        return text

    def __enter__(self) -> "TelemetryLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.close()
        return None


__all__ = ["TelemetryLogger"]
