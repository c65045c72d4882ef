"""Benchmark coordination and timing for the pixel transforms.

AIDEV-NOTE: A benchmark test runs one transform repeatedly on the same
buffer. The number of runs depends on the image size category so large
images do not take forever. Every run must produce identical output;
the transforms are deterministic and verification checks that. A
comparison runs two quantization methods on the same image and checks
their outputs against each other.
"""

import csv
import time
import tracemalloc
from dataclasses import replace
from pathlib import Path

import numpy as np

from .image_processing import ImageProcessor
from .image_processing.quantization import QUANTIZATION_METHODS
from .models import (
    BenchmarkResult,
    BenchmarkSettings,
    ComparisonResult,
    RunMetrics,
    SizeCategory,
    TransformType,
)


class Benchmark:
    """Runs transforms repeatedly and collects timing statistics."""

    def __init__(
        self,
        processor: ImageProcessor | None = None,
        settings: BenchmarkSettings | None = None,
    ):
        self.processor = processor or ImageProcessor()
        self.settings = settings or BenchmarkSettings()
        self.results: "dict[str, list[BenchmarkResult]]" = {}

    def size_category(
        self, transform: TransformType, width: int, height: int
    ) -> SizeCategory:
        """Bucket an image by megapixels using the transform's thresholds."""
        run_settings = self.settings.for_transform(transform)
        megapixels = (width * height) / 1_000_000

        if megapixels < run_settings.small_threshold:
            return SizeCategory.SMALL
        elif megapixels < run_settings.medium_threshold:
            return SizeCategory.MEDIUM
        return SizeCategory.LARGE

    def run_count(self, transform: TransformType, width: int, height: int) -> int:
        """Number of runs to do for an image of this size."""
        run_settings = self.settings.for_transform(transform)
        category = self.size_category(transform, width, height)

        if category == SizeCategory.SMALL:
            return run_settings.small_runs
        elif category == SizeCategory.MEDIUM:
            return run_settings.medium_runs
        return run_settings.large_runs

    def measure(
        self,
        transform: TransformType,
        buffer,
        width: int,
        height: int,
        processor: ImageProcessor | None = None,
    ) -> RunMetrics:
        """Time a single execution of a transform.

        Memory usage is the peak traced allocation during the run in MB.
        AIDEV-NOTE: tracemalloc is active while timing, so times include
        its overhead, equally for every transform and method.
        """
        processor = processor or self.processor

        was_tracing = tracemalloc.is_tracing()
        if not was_tracing:
            tracemalloc.start()
        tracemalloc.reset_peak()
        baseline, _ = tracemalloc.get_traced_memory()

        try:
            start = time.perf_counter()
            output = processor.apply(transform, buffer, width, height)
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            _, peak = tracemalloc.get_traced_memory()
        finally:
            if not was_tracing:
                tracemalloc.stop()

        megapixels = (width * height) / 1_000_000
        throughput = megapixels / (elapsed_ms / 1000.0) if elapsed_ms > 0 else 0.0

        return RunMetrics(
            execution_time=elapsed_ms,
            throughput=throughput,
            memory_usage=max(0, peak - baseline) / (1024 * 1024),
            output=output,
        )

    def run_test(
        self,
        transform: TransformType,
        buffer,
        width: int,
        height: int,
        runs: int | None = None,
        processor: ImageProcessor | None = None,
    ) -> BenchmarkResult:
        """Run a transform several times and aggregate the measurements.

        Args:
            transform: Which transform to benchmark
            buffer: RGBA input bytes
            width: Image width in pixels
            height: Image height in pixels
            runs: Number of runs, chosen from the size category if None
            processor: Processor to run with, defaults to the benchmark's own

        Returns:
            BenchmarkResult, also stored in the history
        """
        transform = TransformType(transform)
        processor = processor or self.processor
        if runs is None:
            runs = self.run_count(transform, width, height)
        runs = max(1, runs)

        method = ""
        if transform == TransformType.QUANTIZE:
            method = processor.processing_config.quantization_method

        category = self.size_category(transform, width, height)
        label = f"{transform.value} ({method})" if method else transform.value
        print(
            f"Running {label} test on {width}x{height} "
            f"({category.value}, {runs} runs)..."
        )

        metrics_list = []
        for i in range(runs):
            metrics = self.measure(transform, buffer, width, height, processor)
            metrics_list.append(metrics)
            print(
                f"  run {i + 1}/{runs}: {metrics.execution_time:.2f} ms, "
                f"{metrics.memory_usage:.1f} MB"
            )

            if self.settings.delay_between_runs > 0 and i < runs - 1:
                time.sleep(self.settings.delay_between_runs)

        times = np.array([m.execution_time for m in metrics_list], dtype=np.float64)
        verified = self.verify_results([m.output for m in metrics_list])

        result = BenchmarkResult(
            transform=transform,
            width=width,
            height=height,
            runs=runs,
            first_run=metrics_list[0],
            median=self.get_median_metrics(metrics_list),
            method=method,
            mean_time=float(times.mean()),
            std_dev=float(times.std()),
            verified=verified,
        )
        self.store_result(result)

        print(
            f"Median: {result.median.execution_time:.2f} ms, "
            f"{result.median.throughput:.2f} Mpx/s, "
            f"CV {result.coefficient_of_variation:.1f}%, "
            f"{'identical' if verified else 'MISMATCHED'} output"
        )
        return result

    def compare(
        self,
        buffer,
        width: int,
        height: int,
        candidate_method: str,
        runs: int | None = None,
    ) -> ComparisonResult:
        """Benchmark the configured quantization method against another one.

        Both methods get the same number of runs on the same buffer. Their
        median outputs are checked against each other with the same pixel
        diff threshold as run-to-run verification.

        Raises:
            ValueError: If candidate_method is not a known method
        """
        if candidate_method not in QUANTIZATION_METHODS:
            raise ValueError(
                f"Unknown quantization method '{candidate_method}', "
                f"expected one of {', '.join(QUANTIZATION_METHODS)}"
            )

        config = self.processor.processing_config
        candidate = ImageProcessor(
            replace(config, quantization_method=candidate_method),
            self.processor.max_dimension,
        )
        if runs is None:
            runs = self.run_count(TransformType.QUANTIZE, width, height)

        print(f"Comparing {config.quantization_method} against {candidate_method}...")
        baseline_result = self.run_test(
            TransformType.QUANTIZE, buffer, width, height, runs
        )
        candidate_result = self.run_test(
            TransformType.QUANTIZE, buffer, width, height, runs, processor=candidate
        )

        comparison = ComparisonResult(
            baseline=baseline_result,
            candidate=candidate_result,
            outputs_match=self.verify_results(
                [baseline_result.median.output, candidate_result.median.output]
            ),
        )
        print(
            f"Speedup of {candidate_method} over {config.quantization_method}: "
            f"{comparison.speedup:.2f}x, outputs "
            f"{'identical' if comparison.outputs_match else 'differ'}"
        )
        return comparison

    @staticmethod
    def get_median_metrics(metrics_list: "list[RunMetrics]") -> RunMetrics:
        """Sort by execution time and take the middle run."""
        ordered = sorted(metrics_list, key=lambda m: m.execution_time)
        return ordered[len(ordered) // 2]

    def verify_results(self, outputs: "list[bytes]") -> bool:
        """Check that every run produced the same pixels as the first.

        A channel differing by pixel_diff_threshold or more is a mismatch.
        """
        if not outputs:
            return True

        reference = np.frombuffer(outputs[0], dtype=np.uint8).astype(np.int16)
        for output in outputs[1:]:
            current = np.frombuffer(output, dtype=np.uint8).astype(np.int16)
            if current.shape != reference.shape:
                return False
            if np.abs(current - reference).max(initial=0) >= self.settings.pixel_diff_threshold:
                return False
        return True

    def store_result(self, result: BenchmarkResult) -> None:
        """Append to the transform's history, keeping the newest entries."""
        history = self.results.setdefault(result.transform.value, [])
        history.append(result)
        overflow = len(history) - self.settings.max_history_items
        if overflow > 0:
            del history[:overflow]

    def export_csv(self, transform: TransformType, file_path: str | Path) -> int:
        """Write the stored results of a transform as CSV.

        Returns:
            Number of data rows written
        """
        transform = TransformType(transform)
        history = self.results.get(transform.value, [])

        with open(file_path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(
                [
                    "Run",
                    "Width",
                    "Height",
                    "Megapixels",
                    "Runs",
                    "Execution Time (ms)",
                    "Cold Start Overhead (ms)",
                    "Pixel Rate (Mpx/s)",
                    "Consistency (CV %)",
                    "Memory (MB)",
                    "Method",
                    "Verified",
                ]
            )
            for i, result in enumerate(history):
                writer.writerow(
                    [
                        i + 1,
                        result.width,
                        result.height,
                        f"{result.megapixels:.2f}",
                        result.runs,
                        f"{result.median.execution_time:.2f}",
                        f"{result.cold_start_overhead:.2f}",
                        f"{result.median.throughput:.2f}",
                        f"{result.coefficient_of_variation:.2f}",
                        f"{result.median.memory_usage:.2f}",
                        result.method,
                        result.verified,
                    ]
                )

        print(f"Exported {len(history)} {transform.value} results to {file_path}")
        return len(history)
