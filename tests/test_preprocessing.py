import cv2
import numpy as np
import pytest

from muzzleprint.models import PixelBuffer, GrayscaleBuffer
from muzzleprint.preprocessing import (
    clip_histogram, equalization_lut, equalize_local_contrast,
    gaussian_blur, load_image, preprocess, to_grayscale,
)


def test_to_grayscale_rounds_luma_and_keeps_alpha():
    rgba = np.array([[[255, 0, 0, 17], [0, 255, 0, 200], [0, 0, 255, 255]]], dtype=np.uint8)
    gray = to_grayscale(PixelBuffer.from_array(rgba))

    assert isinstance(gray, GrayscaleBuffer)
    assert gray.pixels[0, :, 0].tolist() == [76, 150, 29]
    assert gray.pixels[0, :, 3].tolist() == [17, 200, 255]
    assert np.array_equal(gray.pixels[:, :, 0], gray.pixels[:, :, 2])


def test_to_grayscale_does_not_modify_input(ridge_image):
    before = ridge_image.data.copy()
    to_grayscale(ridge_image)
    assert np.array_equal(ridge_image.data, before)


def test_blur_keeps_uniform_image_uniform(uniform_gray):
    blurred = gaussian_blur(to_grayscale(uniform_gray))
    assert np.all(blurred.pixels[:, :, :3] == 128)


def test_blur_spreads_single_pixel():
    image = np.zeros((5, 5), dtype=np.uint8)
    image[2, 2] = 255
    blurred = gaussian_blur(PixelBuffer.from_array(image)).pixels[:, :, 0]

    assert blurred[2, 2] == 64
    assert blurred[1, 2] == 32
    assert blurred[1, 1] == 16
    assert blurred[0, 0] == 0


def test_clipped_histogram_never_exceeds_clip_count():
    rng = np.random.default_rng(0)
    for size in (16, 37, 64):
        tile = rng.integers(0, 40, size=(size, size))
        histogram = np.bincount(tile.ravel(), minlength=256)
        clipped = clip_histogram(histogram, 2.0, tile.size)
        assert clipped.max() <= int(np.floor(2.0 * tile.size / 256))


def test_equalization_lut_is_monotonic():
    rng = np.random.default_rng(1)
    tile = rng.integers(0, 256, size=(32, 32)).astype(np.uint8)
    lut = equalization_lut(tile, 2.0)

    assert lut.shape == (256,)
    assert np.all(np.diff(lut) >= 0)
    assert lut.min() >= 0 and lut.max() <= 255


def test_equalization_lut_single_value_tile_maps_to_zero():
    tile = np.full((64, 64), 90, dtype=np.uint8)
    lut = equalization_lut(tile, 2.0)
    assert lut[90] == 0


def test_equalization_lut_zero_denominator():
    tile = np.full((4, 4), 90, dtype=np.uint8)
    # Clip count equals the pixel count, so cdf_min covers the whole tile
    lut = equalization_lut(tile, 256.0)
    assert not lut.any()


def test_equalize_covers_remainder_pixels():
    rng = np.random.default_rng(2)
    image = PixelBuffer.from_array(rng.integers(0, 256, size=(70, 75)).astype(np.uint8))
    equalized = equalize_local_contrast(image)

    assert equalized.shape == (70, 75)
    # Last row and column belong to the last tiles and are remapped, not left at 0
    assert equalized.pixels[-1, :, 0].any()
    assert equalized.pixels[:, -1, 0].any()


def test_preprocess_returns_same_size_grayscale(ridge_image):
    processed = preprocess(ridge_image)
    assert processed.shape == ridge_image.shape
    assert np.array_equal(processed.pixels[:, :, 0], processed.pixels[:, :, 1])


def test_load_image_downscales(tmp_path):
    path = tmp_path / "big.png"
    cv2.imwrite(str(path), np.full((300, 200, 3), 50, dtype=np.uint8))

    image = load_image(path, max_size=100)
    assert max(image.width, image.height) == 100
    assert image.pixels[0, 0].tolist() == [50, 50, 50, 255]


def test_load_image_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "missing.png")
