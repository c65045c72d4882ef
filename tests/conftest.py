import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def random_image():
    rng = np.random.default_rng(0)
    width, height = 40, 30
    data = rng.integers(0, 256, size=width * height * 4, dtype=np.uint8)
    return data.tobytes(), width, height


@pytest.fixture
def image_file(tmp_path):
    """A small PNG on disk: left half red, right half blue, opaque."""
    arr = np.zeros((6, 8, 4), dtype=np.uint8)
    arr[:, :4] = (255, 0, 0, 255)
    arr[:, 4:] = (0, 0, 255, 255)
    path = tmp_path / "input.png"
    Image.fromarray(arr).save(path)
    return path
