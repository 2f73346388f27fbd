"""
Chromesthesia timing benchmark.

Usage:
    python scripts/benchmark.py [--quick]

Modes:
    default  : 3-minute buffer for offline analysis, 5 timed runs
    --quick  : 30-second buffer, 3 timed runs (CI-friendly)

Per-tick work (analyser snapshot + band extraction) must stay well inside
one 60 fps frame (16.7 ms); the script exits non-zero when it does not.
"""

import argparse
import sys
import time
from typing import List

import numpy as np

from chromesthesia.core.analyzer import AudioFeatureEstimator
from chromesthesia.core.bands import EIGHT_BAND, THREE_BAND, extract_bands
from chromesthesia.core.spectrum import SpectrumAnalyser, average_byte_spectrum

_SEP = "─" * 72
FRAME_BUDGET_MS = 1000.0 / 60


def _hdr(title: str) -> None:
    print(f"\n{_SEP}")
    print(f"  {title}")
    print(_SEP)


def _timeit(fn, *args, warmup: int = 2, runs: int = 5, **kwargs) -> List[float]:
    """Run fn(*args, **kwargs), discard warmup iterations, return timed samples."""
    for _ in range(warmup):
        fn(*args, **kwargs)
    times = []
    for _ in range(runs):
        t0 = time.perf_counter()
        fn(*args, **kwargs)
        times.append(time.perf_counter() - t0)
    return times


def _stats(times: List[float]) -> str:
    arr = np.array(times)
    return f"mean={arr.mean()*1000:.3f} ms  min={arr.min()*1000:.3f} ms  max={arr.max()*1000:.3f} ms"


def _test_signal(seconds: float, sr: int) -> np.ndarray:
    """Kick-like pulses over a chord, loud in the middle."""
    t = np.arange(int(seconds * sr)) / sr
    chord = sum(np.sin(2 * np.pi * f * t) for f in (110.0, 440.0, 1760.0)) / 3
    pulses = np.exp(-30 * (t % 0.5))
    swell = 0.3 + 0.7 * np.sin(np.pi * t / seconds)
    return (0.8 * swell * (0.5 * chord + 0.5 * pulses * np.sin(2 * np.pi * 60 * t))).astype(np.float32)


def _tick(analyser: SpectrumAnalyser, chunk: np.ndarray, layout) -> None:
    analyser.push(chunk)
    extract_bands(analyser.get_byte_frequency_data(), layout)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Chromesthesia benchmark")
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Use a 30 s buffer instead of 3 min for fast CI runs",
    )
    args = parser.parse_args()

    sr = 44100
    if args.quick:
        seconds, WARMUP, RUNS = 30.0, 1, 3
    else:
        seconds, WARMUP, RUNS = 180.0, 2, 5

    print(f"\nChromesthesia Benchmark  :  {seconds:.0f} s @ {sr} Hz")
    print(f"Warm-up runs: {WARMUP}  |  Timed runs: {RUNS}")

    y = _test_signal(seconds, sr)
    snapshot = np.random.RandomState(0).randint(0, 256, 1024).astype(np.uint8)
    chunk = y[: sr // 60]
    results = {}

    _hdr("1. extract_bands (per tick)")
    for name, layout in (("3-band", THREE_BAND), ("8-band", EIGHT_BAND)):
        t = _timeit(extract_bands, snapshot, layout, warmup=10, runs=200)
        results[f"extract_bands {name}"] = t
        print(f"  {name}  {_stats(t)}")

    _hdr("2. analyser push + snapshot + bands (per tick)")
    analyser = SpectrumAnalyser()
    t = _timeit(_tick, analyser, chunk, THREE_BAND, warmup=10, runs=200)
    results["live tick"] = t
    print(f"  {_stats(t)}")

    _hdr("3. average_byte_spectrum")
    t = _timeit(average_byte_spectrum, y, warmup=WARMUP, runs=RUNS)
    results["average_byte_spectrum"] = t
    print(f"  {_stats(t)}")

    _hdr("4. AudioFeatureEstimator.analyze")
    estimator = AudioFeatureEstimator()
    t = _timeit(estimator.analyze, y, sr, warmup=WARMUP, runs=RUNS)
    results["analyze"] = t
    print(f"  {_stats(t)}")
    print(f"  Result: {estimator.analyze(y, sr).to_dict()}")

    _hdr("Summary")
    name_w = max(len(name) for name in results) + 2
    print(f"  {'Function':<{name_w}} Time (ms, mean)")
    print(f"  {'-'*name_w} ---------------")
    for name, times in results.items():
        print(f"  {name:<{name_w}} {np.mean(times)*1000:.3f}")

    tick_ms = np.max(results["live tick"]) * 1000
    if tick_ms > FRAME_BUDGET_MS:
        print(f"\n  !! Live tick took {tick_ms:.2f} ms, over the {FRAME_BUDGET_MS:.1f} ms frame !!")
        sys.exit(1)
    print(f"\n{_SEP}\n")


if __name__ == "__main__":
    main()
