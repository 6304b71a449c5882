from __future__ import annotations
import time
import numpy as np


def summarise_seconds(samples):
    """
    Summarise a list of durations in seconds.
    Returns ms stats: mean, p50, p90, p95, max.
    """
    arr = np.array(samples, dtype=np.float64)
    if arr.size == 0:
        return {
            "n": 0,
            "mean_ms": None,
            "p50_ms": None,
            "p90_ms": None,
            "p95_ms": None,
            "max_ms": None,
        }

    p50, p90, p95 = np.percentile(arr, [50, 90, 95]) * 1000.0
    return {
        "n": int(arr.size),
        "mean_ms": float(arr.mean() * 1000.0),
        "p50_ms": float(p50),
        "p90_ms": float(p90),
        "p95_ms": float(p95),
        "max_ms": float(arr.max() * 1000.0),
    }


class DrawTimer:
    """Collects per-frame draw durations for one playback session."""

    def __init__(self, clock=time.perf_counter):
        self._clock = clock
        self.samples = []
        self.overlays = 0

    def __enter__(self):
        self._t0 = self._clock()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.samples.append(self._clock() - self._t0)
        return False

    def summary(self):
        out = summarise_seconds(self.samples)
        out["frames_with_overlay"] = self.overlays
        return out

    def format(self):
        s = self.summary()
        if s["n"] == 0:
            return "no frames drawn"
        return (
            f"{s['n']} frames ({s['frames_with_overlay']} with overlay), "
            f"draw mean {s['mean_ms']:.2f} ms, p95 {s['p95_ms']:.2f} ms, max {s['max_ms']:.2f} ms"
        )
