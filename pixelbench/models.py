"""Data models and constants for the pixel transform benchmark."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# AIDEV-NOTE: Quantizer constants - changing these changes every output byte
SAMPLE_SIZE = 1000  # points used to train the clustering
MAX_ITERATIONS = 20  # refinement rounds
CONVERGENCE_THRESHOLD = 1.0  # max centroid movement (RGB units) to stop early

EDGE_THRESHOLD = 170  # binary edge cutoff (strictly greater is an edge)

# Configuration file path
CONFIG_FILE = Path.home() / ".pixelbench_config.json"


class TransformType(Enum):
    """Pixel transforms that can be applied and benchmarked."""

    INVERT = "invert"
    QUANTIZE = "quantize"
    EDGE_DETECT = "edges"


class EdgeMode(Enum):
    """Edge detection variants.

    AIDEV-NOTE: The two variants differ in preprocessing and alpha handling,
    neither is the "correct" one. Callers must pick explicitly.
    """

    BINARY_THRESHOLD = "binary"  # blur, Sobel, 0/255 mask, opaque output
    CONTINUOUS_MAGNITUDE = "continuous"  # plain gray, Sobel, original alpha


class SizeCategory(Enum):
    """Image size buckets used to choose how many benchmark runs to do."""

    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"


@dataclass
class ProcessingConfig:
    """Parameters passed to the transforms."""

    # Color quantization
    num_colors: int = 8  # k
    quantization_method: str = "kmeans"  # "kmeans", "sklearn", "median_cut", "octree"

    # Edge detection
    edge_mode: EdgeMode = EdgeMode.BINARY_THRESHOLD
    edge_threshold: int = EDGE_THRESHOLD


@dataclass
class RunSettings:
    """Per-transform benchmark run settings."""

    max_dimension: int = 4096  # px, longest side after loading
    small_threshold: float = 4.0  # megapixels
    medium_threshold: float = 25.0  # megapixels
    small_runs: int = 30
    medium_runs: int = 10
    large_runs: int = 1


@dataclass
class BenchmarkSettings:
    """Benchmark harness configuration persisted between sessions."""

    runs: "dict[str, RunSettings]" = field(
        default_factory=lambda: {t.value: RunSettings() for t in TransformType}
    )

    max_history_items: int = 10
    pixel_diff_threshold: int = 1  # per-channel difference counted as a mismatch
    delay_between_runs: float = 0.0  # seconds

    def for_transform(self, transform: TransformType) -> RunSettings:
        """Return the run settings for a transform, creating defaults."""
        return self.runs.setdefault(transform.value, RunSettings())


# --- Benchmark Results ---


@dataclass
class RunMetrics:
    """Measurements of a single transform execution."""

    execution_time: float  # ms
    throughput: float  # megapixels per second
    memory_usage: float = 0.0  # peak MB allocated during the run
    output: bytes = b""


@dataclass
class BenchmarkResult:
    """Aggregated measurements of repeated runs of one transform."""

    transform: TransformType
    width: int
    height: int
    runs: int

    first_run: RunMetrics
    median: RunMetrics

    method: str = ""  # quantization method, empty for other transforms

    # Statistics over execution time (ms)
    mean_time: float = 0.0
    std_dev: float = 0.0

    verified: bool = True  # all runs produced identical output

    @property
    def megapixels(self) -> float:
        return (self.width * self.height) / 1_000_000

    @property
    def coefficient_of_variation(self) -> float:
        """Standard deviation as a percentage of the mean (lower is steadier)."""
        if self.mean_time <= 0:
            return 0.0
        return self.std_dev / self.mean_time * 100.0

    @property
    def cold_start_overhead(self) -> float:
        """First run penalty over the median run in ms."""
        return self.first_run.execution_time - self.median.execution_time


@dataclass
class ComparisonResult:
    """Two quantization methods benchmarked on the same image."""

    baseline: BenchmarkResult
    candidate: BenchmarkResult

    outputs_match: bool = False  # median outputs are pixel-identical

    @property
    def speedup(self) -> float:
        """Baseline median time over candidate median time (>1 means faster)."""
        candidate_time = self.candidate.median.execution_time
        if candidate_time <= 0:
            return 0.0
        return self.baseline.median.execution_time / candidate_time
