"""Color quantization methods for reducing image color palettes.

AIDEV-NOTE: The default method is a deterministic K-means: evenly spaced
sampling, farthest-point seeding and a bounded refinement loop. There is
no randomness anywhere, so identical input always gives byte-identical
output. scikit-learn and Pillow quantizers are kept as alternatives for
comparison.
"""

import warnings

import numpy as np
from PIL import Image
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning

from ..models import CONVERGENCE_THRESHOLD, MAX_ITERATIONS, SAMPLE_SIZE
from .utils import (
    distances_to_centroids,
    extract_points,
    nearest_centroid,
    to_rgba_array,
    to_uint8,
    validate_dimensions,
)

QUANTIZATION_METHODS = ("kmeans", "sklearn", "median_cut", "octree")


def quantize(buffer, width: int, height: int, k: int) -> bytes:
    """Reduce an RGBA buffer to at most k colors.

    Args:
        buffer: RGBA bytes, length width * height * 4
        width: Image width in pixels
        height: Image height in pixels
        k: Number of colors (clusters), at least 1

    Returns:
        New RGBA buffer of the same size. Alpha is copied unchanged.

    Raises:
        ValueError: On malformed buffer or k < 1
    """
    points = extract_points(buffer, width, height)
    if k < 1:
        raise ValueError(f"Number of colors must be at least 1, got {k}")

    sample = deterministic_sample(points)
    centroids = initialize_centroids(sample, k)
    centroids = refine_centroids(sample, centroids)

    alpha = to_rgba_array(buffer, width, height)[..., 3].reshape(-1)
    return recolor_pixels(points, centroids, alpha)


def deterministic_sample(points: np.ndarray, sample_size: int = SAMPLE_SIZE) -> np.ndarray:
    """Pick min(sample_size, N) evenly spaced points.

    Index i of the sample is point floor(i * step) with the float64 step
    N / sample_size. Float rounding makes this differ by one from the
    exact integer quotient for some sizes (N=1015, i=200 gives 202, not
    203). The float form is kept so samples match the reference
    implementations byte for byte.
    """
    n = len(points)
    size = min(sample_size, n)
    if size <= 0:
        return points[:0].copy()

    step = n / size
    indices = np.floor(np.arange(size, dtype=np.float64) * step).astype(np.int64)
    return points[indices].copy()


def initialize_centroids(sample: np.ndarray, k: int) -> np.ndarray:
    """Deterministic farthest-point seeding.

    The first centroid is the point a quarter of the way into the sample.
    Each further centroid is the scanned point whose distance to its
    closest existing centroid is largest (first one wins on ties). Large
    samples are scanned with a stride of N // 1000.

    Returns:
        (k, 3) float64 array, or an empty (0, 3) array when the sample is
        empty or k <= 0.
    """
    n = len(sample)
    if n == 0 or k <= 0:
        return np.empty((0, 3), dtype=np.float64)

    centroids = [sample[n // 4].copy()]

    stride = max(1, n // 1000)
    candidates = sample[::stride]

    # Distance from each candidate to its closest centroid so far
    min_dist = distances_to_centroids(candidates, centroids[0][None, :])[:, 0]

    for _ in range(1, k):
        best = int(np.argmax(min_dist))
        chosen = candidates[best].copy()
        centroids.append(chosen)
        min_dist = np.minimum(
            min_dist, distances_to_centroids(candidates, chosen[None, :])[:, 0]
        )

    return np.array(centroids, dtype=np.float64)


def refine_centroids(
    sample: np.ndarray,
    centroids: np.ndarray,
    max_iterations: int = MAX_ITERATIONS,
    threshold: float = CONVERGENCE_THRESHOLD,
) -> np.ndarray:
    """Run the K-means assign/update loop on the sample.

    Clusters with no members keep their previous centroid. The loop stops
    once no centroid moved more than threshold, returning the centroids
    from before that last (negligible) update, or after max_iterations.

    Returns:
        New (k, 3) array, same order as the input centroids
    """
    centroids = np.array(centroids, dtype=np.float64)
    k = len(centroids)
    if k == 0 or len(sample) == 0:
        return centroids

    for _ in range(max_iterations):
        labels = nearest_centroid(sample, centroids)

        # Running sums and counts instead of per-cluster member lists
        counts = np.bincount(labels, minlength=k)
        sums = np.zeros((k, 3), dtype=np.float64)
        np.add.at(sums, labels, sample)

        new_centroids = centroids.copy()
        filled = counts > 0
        new_centroids[filled] = sums[filled] / counts[filled, None]

        moved = np.sqrt(((new_centroids - centroids) ** 2).sum(axis=1))
        if np.all(moved <= threshold):
            break
        centroids = new_centroids

    return centroids


def recolor_pixels(points: np.ndarray, centroids: np.ndarray, alpha: np.ndarray) -> bytes:
    """Replace every pixel with its nearest centroid color.

    Args:
        points: (N, 3) colors of the full image
        centroids: (k, 3) final centroids, k >= 1
        alpha: (N,) original alpha bytes

    Returns:
        RGBA bytes, length N * 4
    """
    labels = nearest_centroid(points, centroids)
    palette = to_uint8(centroids)

    out = np.empty((len(points), 4), dtype=np.uint8)
    out[:, :3] = palette[labels]
    out[:, 3] = alpha
    return out.tobytes()


# --- Alternative quantizers ---


def quantize_colors(
    buffer,
    width: int,
    height: int,
    num_colors: int,
    method: str = "kmeans",
) -> bytes:
    """Reduce an RGBA buffer to a limited color palette.

    Args:
        buffer: RGBA bytes
        width: Image width in pixels
        height: Image height in pixels
        num_colors: Target number of colors
        method: 'kmeans', 'sklearn', 'median_cut' or 'octree'

    Returns:
        New RGBA buffer, alpha preserved

    Raises:
        ValueError: On malformed input or unknown method
    """
    if method == "kmeans":
        return quantize(buffer, width, height, num_colors)
    elif method == "sklearn":
        return quantize_sklearn(buffer, width, height, num_colors)
    elif method == "median_cut":
        return quantize_pillow(
            buffer, width, height, num_colors, method=Image.Quantize.MEDIANCUT
        )
    elif method == "octree":
        return quantize_pillow(
            buffer, width, height, num_colors, method=Image.Quantize.FASTOCTREE
        )
    raise ValueError(
        f"Unknown quantization method '{method}', "
        f"expected one of {', '.join(QUANTIZATION_METHODS)}"
    )


def quantize_sklearn(buffer, width: int, height: int, num_colors: int) -> bytes:
    """scikit-learn KMeans seeded with the deterministic centroids.

    AIDEV-NOTE: Trained on the same deterministic sample with a single
    explicit init, so results are reproducible without a random_state.
    With fewer distinct colors than clusters the init has duplicates,
    sklearn then warns about fewer distinct clusters, which is expected.
    """
    points = extract_points(buffer, width, height)
    if num_colors < 1:
        raise ValueError(f"Number of colors must be at least 1, got {num_colors}")

    sample = deterministic_sample(points)
    init = initialize_centroids(sample, min(num_colors, len(sample)))

    kmeans = KMeans(
        n_clusters=len(init), init=init, n_init=1, max_iter=MAX_ITERATIONS
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        kmeans.fit(sample)

    labels = kmeans.predict(points)
    palette = to_uint8(kmeans.cluster_centers_)

    rgba = to_rgba_array(buffer, width, height).reshape(-1, 4)
    rgba[:, :3] = palette[labels]
    return rgba.tobytes()


def quantize_pillow(
    buffer,
    width: int,
    height: int,
    num_colors: int,
    method: Image.Quantize,
) -> bytes:
    """Pillow-based color quantization."""
    validate_dimensions(buffer, width, height)
    if not 1 <= num_colors <= 256:
        raise ValueError(f"Pillow quantizers support 1-256 colors, got {num_colors}")

    rgba = to_rgba_array(buffer, width, height)
    image = Image.fromarray(rgba).convert("RGB")

    # Quantize returns a palette image, convert back to RGB
    quantized = image.quantize(colors=num_colors, method=method).convert("RGB")

    rgba[..., :3] = np.asarray(quantized, dtype=np.uint8)
    return rgba.tobytes()

