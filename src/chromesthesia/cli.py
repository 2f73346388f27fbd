"""
Command line interface.

Usage:
    chromesthesia analyze track.wav [--params] [--output report.json]
    chromesthesia bands track.wav --layout 8 --fps 60 [--output bands.json]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from chromesthesia.core.analyzer import AudioFeatureEstimator, EstimatorConfig
from chromesthesia.core.bands import LAYOUTS, get_layout
from chromesthesia.core.decoder import AudioDecoder
from chromesthesia.core.seeding import suggest_parameters
from chromesthesia.core.spectrum import AnalyserConfig
from chromesthesia.core.stream import LiveBandMonitor
from chromesthesia.errors import ChromesthesiaError
from chromesthesia.io.exporter import ReportExporter
from chromesthesia.pipeline import AudioPipeline

logger = logging.getLogger(__name__)


def _emit(document: dict, output: Optional[Path]) -> None:
    if output is None:
        json.dump(document, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        with open(output, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)
        logger.info("Wrote %s", output)


def cmd_analyze(args: argparse.Namespace) -> int:
    config = EstimatorConfig(downsample=args.downsample)
    pipeline = AudioPipeline(estimator=AudioFeatureEstimator(config))
    result = pipeline.process(args.audio, sr=args.sr)

    parameters = suggest_parameters(result) if args.params else None
    report = ReportExporter().build_report(result, source=args.audio, parameters=parameters)
    _emit(report, args.output)
    return 0


def cmd_bands(args: argparse.Namespace) -> int:
    decoded = AudioDecoder(sr=args.sr).load(args.audio)
    monitor = LiveBandMonitor(
        layout=get_layout(args.layout),
        analyser_config=AnalyserConfig(
            fft_size=args.fft_size,
            smoothing_time_constant=args.smoothing,
        ),
        sample_rate=decoded.sample_rate,
        target_fps=args.fps,
    )
    frames = list(monitor.frames(decoded.channel0, decoded.sample_rate))
    manifest = ReportExporter().build_band_manifest(
        frames,
        fps=args.fps,
        layout_name=monitor.layout.name,
        source=args.audio,
    )
    _emit(manifest, args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chromesthesia",
        description="Audio band extraction and feature estimation",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Estimate tempo, balance, energy and structure")
    analyze.add_argument("audio", type=Path, help="Input audio file")
    analyze.add_argument("--sr", type=int, default=None, help="Resample to this rate")
    analyze.add_argument(
        "--downsample",
        type=int,
        default=EstimatorConfig.downsample,
        help="Sample decimation for tempo detection (default: 10)",
    )
    analyze.add_argument(
        "--params",
        action="store_true",
        help="Include seeded lyric generation parameters",
    )
    analyze.add_argument("-o", "--output", type=Path, default=None, help="Write JSON here")
    analyze.set_defaults(func=cmd_analyze)

    bands = sub.add_parser("bands", help="Per-frame band intensities of simulated playback")
    bands.add_argument("audio", type=Path, help="Input audio file")
    bands.add_argument("--layout", choices=sorted(LAYOUTS), default="3", help="Band count")
    bands.add_argument("--fps", type=int, default=60, help="Frames per second")
    bands.add_argument("--sr", type=int, default=None, help="Resample to this rate")
    bands.add_argument("--fft-size", type=int, default=2048, help="FFT size (power of two)")
    bands.add_argument("--smoothing", type=float, default=0.8, help="Analyser smoothing")
    bands.add_argument("-o", "--output", type=Path, default=None, help="Write JSON here")
    bands.set_defaults(func=cmd_bands)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except (ChromesthesiaError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
