import numpy as np
import pytest

from muzzleprint.extractor import (
    extract_features, grid_means, quadrant_deviations, quadrant_edge_densities, radial_band_means,
)
from muzzleprint.models import PixelBuffer
from muzzleprint.preprocessing import preprocess


def test_feature_vector_has_28_unit_values(ridge_image):
    features = extract_features(preprocess(ridge_image))

    assert features.shape == (28,)
    assert np.all(features >= 0.0)
    assert np.all(features <= 1.0)


@pytest.mark.parametrize("size", [(1, 1), (2, 3), (7, 5)])
def test_tiny_images_still_yield_28_values(size):
    image = PixelBuffer.from_array(np.full(size, 200, dtype=np.uint8))
    assert extract_features(image).shape == (28,)


def test_grid_means_follow_layout():
    gray = np.zeros((8, 8))
    gray[:, 4:] = 255.0
    means = grid_means(gray)

    assert len(means) == 16
    assert means[:4] == [0.0, 0.0, 1.0, 1.0]


def test_flat_image_has_no_edges_or_texture():
    gray = np.full((40, 40), 90.0)
    assert quadrant_edge_densities(gray) == [0.0] * 4
    assert quadrant_deviations(gray) == [0.0] * 4


def test_vertical_stripes_register_as_edges():
    gray = np.zeros((40, 40))
    gray[:, ::2] = 255.0
    assert all(density == 1.0 for density in quadrant_edge_densities(gray))


def test_radial_bands_are_center_out():
    yy, xx = np.indices((41, 41))
    distance = np.hypot(xx - 20, yy - 20)
    gray = np.where(distance < 10, 255.0, 0.0)

    bands = radial_band_means(gray)
    assert bands[0] == 1.0
    assert bands[3] == 0.0


def test_extraction_is_deterministic(ridge_image):
    processed = preprocess(ridge_image)
    assert np.array_equal(extract_features(processed), extract_features(processed))
