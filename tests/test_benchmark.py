import csv
import tracemalloc

import pytest

from pixelbench.benchmark import Benchmark
from pixelbench.image_processing import ImageProcessor
from pixelbench.models import (
    BenchmarkResult,
    BenchmarkSettings,
    ComparisonResult,
    ProcessingConfig,
    RunMetrics,
    SizeCategory,
    TransformType,
)

from factories import checkerboard, solid


def make_result(transform=TransformType.INVERT):
    metrics = RunMetrics(execution_time=2.0, throughput=1.0)
    return BenchmarkResult(
        transform=transform, width=1, height=1, runs=1, first_run=metrics, median=metrics
    )


def test_size_categories():
    benchmark = Benchmark()
    assert benchmark.size_category(TransformType.INVERT, 1000, 1000) == SizeCategory.SMALL
    assert benchmark.size_category(TransformType.INVERT, 2000, 2000) == SizeCategory.MEDIUM
    assert benchmark.size_category(TransformType.INVERT, 5000, 5000) == SizeCategory.LARGE


def test_run_count_follows_category():
    benchmark = Benchmark()
    assert benchmark.run_count(TransformType.QUANTIZE, 10, 10) == 30
    assert benchmark.run_count(TransformType.QUANTIZE, 3000, 3000) == 10
    assert benchmark.run_count(TransformType.QUANTIZE, 6000, 6000) == 1


def test_run_count_uses_transform_settings():
    settings = BenchmarkSettings()
    settings.for_transform(TransformType.EDGE_DETECT).small_runs = 3
    benchmark = Benchmark(settings=settings)
    assert benchmark.run_count(TransformType.EDGE_DETECT, 10, 10) == 3
    assert benchmark.run_count(TransformType.INVERT, 10, 10) == 30


def test_run_test_aggregates_runs():
    benchmark = Benchmark()
    data = solid(8, 8, (255, 0, 0, 255))
    result = benchmark.run_test(TransformType.INVERT, data, 8, 8, runs=3)

    assert result.runs == 3
    assert result.verified
    assert result.median.output == solid(8, 8, (0, 255, 255, 255))
    assert result.mean_time > 0
    assert result.coefficient_of_variation >= 0
    assert result.megapixels == pytest.approx(64 / 1_000_000)
    assert benchmark.results["invert"] == [result]


def test_median_is_middle_by_time():
    runs = [RunMetrics(execution_time=t, throughput=0.0) for t in (5.0, 1.0, 3.0, 9.0)]
    assert Benchmark.get_median_metrics(runs).execution_time == 5.0


def test_verify_results_detects_mismatch():
    benchmark = Benchmark()
    assert benchmark.verify_results([b"\x01\x02", b"\x01\x02"])
    assert not benchmark.verify_results([b"\x01\x02", b"\x01\x03"])
    assert not benchmark.verify_results([b"\x01\x02", b"\x01"])
    assert benchmark.verify_results([])


def test_history_is_capped():
    benchmark = Benchmark(settings=BenchmarkSettings(max_history_items=2))
    results = [make_result() for _ in range(3)]
    for result in results:
        benchmark.store_result(result)
    assert benchmark.results["invert"] == results[1:]


def test_cold_start_overhead():
    result = make_result()
    result.first_run = RunMetrics(execution_time=10.0, throughput=0.0)
    assert result.cold_start_overhead == 8.0


def test_export_csv(tmp_path):
    benchmark = Benchmark()
    benchmark.run_test(TransformType.EDGE_DETECT, solid(5, 5, (1, 1, 1, 255)), 5, 5, runs=2)
    path = tmp_path / "edges.csv"

    assert benchmark.export_csv(TransformType.EDGE_DETECT, path) == 1

    with open(path, newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0][0] == "Run"
    assert rows[1][:3] == ["1", "5", "5"]
    assert rows[1][-1] == "True"
    assert "Memory (MB)" in rows[0]
    assert rows[1][rows[0].index("Method")] == ""


def test_run_test_records_memory_and_method():
    processor = ImageProcessor(ProcessingConfig(num_colors=2))
    benchmark = Benchmark(processor)
    data = checkerboard(16, 16, (255, 0, 0), (0, 0, 255))
    result = benchmark.run_test(TransformType.QUANTIZE, data, 16, 16, runs=2)

    assert result.method == "kmeans"
    assert result.median.memory_usage > 0
    assert result.first_run.memory_usage >= 0


def test_measure_leaves_outer_tracing_running():
    benchmark = Benchmark()
    tracemalloc.start()
    try:
        benchmark.measure(TransformType.INVERT, solid(4, 4, (1, 2, 3, 4)), 4, 4)
        assert tracemalloc.is_tracing()
    finally:
        tracemalloc.stop()


def test_compare_methods_on_checkerboard(capsys):
    processor = ImageProcessor(ProcessingConfig(num_colors=2))
    benchmark = Benchmark(processor)
    data = checkerboard(8, 8, (255, 0, 0), (0, 0, 255))

    comparison = benchmark.compare(data, 8, 8, "sklearn", runs=2)

    assert comparison.baseline.method == "kmeans"
    assert comparison.candidate.method == "sklearn"
    assert comparison.outputs_match
    assert comparison.speedup > 0
    assert len(benchmark.results["quantize"]) == 2
    assert "outputs identical" in capsys.readouterr().out


def test_compare_rejects_unknown_method():
    with pytest.raises(ValueError, match="Unknown quantization method"):
        Benchmark().compare(solid(2, 2, (0, 0, 0, 255)), 2, 2, "random")


def test_speedup_is_baseline_over_candidate():
    baseline = make_result(TransformType.QUANTIZE)
    candidate = make_result(TransformType.QUANTIZE)
    candidate.median = RunMetrics(execution_time=0.5, throughput=0.0)
    assert ComparisonResult(baseline, candidate).speedup == 4.0

    candidate.median = RunMetrics(execution_time=0.0, throughput=0.0)
    assert ComparisonResult(baseline, candidate).speedup == 0.0
