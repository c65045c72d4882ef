"""pixelbench - command line entry point.

Three subcommands:

* ``run`` - apply one transform to an image file and optionally save it.
* ``bench`` - run a transform repeatedly and report timing statistics,
  or compare two quantization methods with ``--compare``.
* ``config`` - show or change the saved benchmark settings.
"""

import argparse
import sys
from dataclasses import fields
from pathlib import Path

from .benchmark import Benchmark
from .config_manager import ConfigManager
from .image_processing import ImageProcessor
from .image_processing.quantization import QUANTIZATION_METHODS
from .models import (
    CONFIG_FILE,
    EDGE_THRESHOLD,
    BenchmarkSettings,
    EdgeMode,
    ProcessingConfig,
    RunSettings,
    TransformType,
)

TRANSFORM_CHOICES = [t.value for t in TransformType]


def parse_args(argv: "list[str] | None" = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="pixelbench",
        description="Deterministic RGBA pixel transforms and their benchmark.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_FILE,
        help="Benchmark settings file (JSON).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Apply a transform to an image.")
    bench_parser = subparsers.add_parser("bench", help="Benchmark a transform.")
    config_parser = subparsers.add_parser(
        "config", help="Show or change the saved benchmark settings."
    )

    for sub in (run_parser, bench_parser):
        sub.add_argument("transform", choices=TRANSFORM_CHOICES)
        sub.add_argument("input", type=Path, help="Input image file.")
        sub.add_argument(
            "--colors",
            type=int,
            default=8,
            help="Number of colors for quantization.",
        )
        sub.add_argument(
            "--method",
            choices=QUANTIZATION_METHODS,
            default="kmeans",
            help="Quantization method.",
        )
        sub.add_argument(
            "--mode",
            choices=[m.value for m in EdgeMode],
            default=EdgeMode.BINARY_THRESHOLD.value,
            help="Edge detection mode: binary mask or continuous magnitude.",
        )
        sub.add_argument(
            "--threshold",
            type=int,
            default=EDGE_THRESHOLD,
            help="Binary edge threshold (0-255).",
        )

    run_parser.add_argument(
        "-o", "--output", type=Path, default=None, help="Where to save the result."
    )
    run_parser.add_argument(
        "--max-dimension",
        type=int,
        default=0,
        help="Downscale so the longest side is at most this (0 keeps size).",
    )

    bench_parser.add_argument(
        "--runs",
        type=int,
        default=None,
        help="Number of runs (default depends on image size).",
    )
    bench_parser.add_argument(
        "--csv", type=Path, default=None, help="Export results to this CSV file."
    )
    bench_parser.add_argument(
        "--output", "-o", type=Path, default=None, help="Save the median run's image."
    )
    bench_parser.add_argument(
        "--compare",
        choices=QUANTIZATION_METHODS,
        default=None,
        metavar="METHOD",
        help="Also benchmark this quantization method and compare it to --method.",
    )

    config_parser.add_argument(
        "--transform",
        choices=TRANSFORM_CHOICES,
        default=None,
        help="Only change run settings of this transform (default: all).",
    )
    config_parser.add_argument("--max-dimension", type=int, help="Longest side in px.")
    config_parser.add_argument(
        "--small-threshold", type=float, help="Small image limit in megapixels."
    )
    config_parser.add_argument(
        "--medium-threshold", type=float, help="Medium image limit in megapixels."
    )
    config_parser.add_argument("--small-runs", type=int, help="Runs for small images.")
    config_parser.add_argument("--medium-runs", type=int, help="Runs for medium images.")
    config_parser.add_argument("--large-runs", type=int, help="Runs for large images.")
    config_parser.add_argument(
        "--history", type=int, help="Results kept per transform."
    )
    config_parser.add_argument(
        "--pixel-diff-threshold",
        type=int,
        help="Per-channel difference counted as a mismatch.",
    )
    config_parser.add_argument(
        "--reset", action="store_true", help="Restore default settings first."
    )

    return parser.parse_args(argv)


def build_processing_config(args: argparse.Namespace) -> ProcessingConfig:
    return ProcessingConfig(
        num_colors=args.colors,
        quantization_method=args.method,
        edge_mode=EdgeMode(args.mode),
        edge_threshold=args.threshold,
    )


def run_command(args: argparse.Namespace) -> None:
    processor = ImageProcessor(build_processing_config(args), args.max_dimension)
    processor.process(TransformType(args.transform), args.input, args.output)


def bench_command(args: argparse.Namespace) -> None:
    transform = TransformType(args.transform)
    if args.compare is not None and transform != TransformType.QUANTIZE:
        raise ValueError("--compare only applies to the quantize transform")

    settings = ConfigManager(args.config).load()
    run_settings = settings.for_transform(transform)

    processor = ImageProcessor(
        build_processing_config(args), run_settings.max_dimension
    )
    benchmark = Benchmark(processor, settings)

    buffer, width, height = processor.load_buffer(args.input)
    if args.compare is not None:
        comparison = benchmark.compare(
            buffer, width, height, args.compare, runs=args.runs
        )
        result = comparison.baseline
    else:
        result = benchmark.run_test(transform, buffer, width, height, runs=args.runs)

    if args.output is not None:
        processor.save_buffer(result.median.output, width, height, args.output)
        print(f"Saved {args.output}")
    if args.csv is not None:
        benchmark.export_csv(transform, args.csv)


def apply_config_changes(settings: BenchmarkSettings, args: argparse.Namespace) -> None:
    """Copy the given command line values into the settings."""
    if args.history is not None:
        settings.max_history_items = args.history
    if args.pixel_diff_threshold is not None:
        settings.pixel_diff_threshold = args.pixel_diff_threshold

    if args.transform is not None:
        targets = [settings.for_transform(TransformType(args.transform))]
    else:
        targets = [settings.for_transform(t) for t in TransformType]

    for f in fields(RunSettings):
        value = getattr(args, f.name)
        if value is None:
            continue
        for run_settings in targets:
            setattr(run_settings, f.name, value)


def print_settings(settings: BenchmarkSettings) -> None:
    print(f"max_history_items: {settings.max_history_items}")
    print(f"pixel_diff_threshold: {settings.pixel_diff_threshold}")
    for transform in TransformType:
        run_settings = settings.for_transform(transform)
        values = ", ".join(
            f"{f.name}={getattr(run_settings, f.name)}" for f in fields(RunSettings)
        )
        print(f"{transform.value}: {values}")


def config_command(args: argparse.Namespace) -> None:
    manager = ConfigManager(args.config)
    settings = BenchmarkSettings() if args.reset else manager.load()
    apply_config_changes(settings, args)

    ok, error = manager.save(settings)
    if not ok:
        raise ValueError(f"Could not save settings to {args.config}: {error}")
    print(f"Saved settings to {args.config}")
    print_settings(settings)


COMMANDS = {
    "run": run_command,
    "bench": bench_command,
    "config": config_command,
}


def main(argv: "list[str] | None" = None) -> int:
    """Entry point for the ``pixelbench`` console script."""
    args = parse_args(argv)

    try:
        COMMANDS[args.command](args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
