"""Shared synthetic muzzle images for the test-suite."""

import numpy as np
import pytest

from muzzleprint import config
from muzzleprint.models import PixelBuffer


@pytest.fixture(scope="session", autouse=True)
def log_dir(tmp_path_factory):
    """Send rotating log files to a temporary directory for the whole session."""
    directory = tmp_path_factory.mktemp("logs")
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(config, "LOG_DIR", directory)
        yield directory


def ridge_array(size: int = 128, seed: int = 7) -> np.ndarray:
    """Curved ridge-and-bead pattern with noise, as a uint8 (size, size) array."""
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[0:size, 0:size].astype(np.float64)
    ridges = np.sin(xx / 3.0 + 2.0 * np.sin(yy / 11.0)) * np.cos(yy / 5.0)
    noise = rng.normal(0.0, 0.25, size=(size, size))
    image = 128.0 + 70.0 * ridges + 30.0 * noise
    return np.clip(image, 0, 255).astype(np.uint8)


@pytest.fixture
def ridge_pixels():
    return ridge_array()


@pytest.fixture
def uniform_gray():
    return PixelBuffer.from_array(np.full((64, 64, 3), 128, dtype=np.uint8))


@pytest.fixture
def ridge_image():
    return PixelBuffer.from_array(ridge_array())


@pytest.fixture
def other_ridge_image():
    return PixelBuffer.from_array(ridge_array(seed=11)[:, ::-1])


@pytest.fixture
def noise_image():
    rng = np.random.default_rng(3)
    return PixelBuffer.from_array(rng.integers(0, 256, size=(96, 96, 3), dtype=np.uint8))
