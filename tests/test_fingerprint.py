import numpy as np
import pytest

from muzzleprint.fingerprint import (
    fingerprint, fingerprint_similarity, hamming_distance, is_same_photo,
    pack_fingerprint, unpack_fingerprint,
)
from muzzleprint.models import PixelBuffer, VectorLengthMismatch


def test_fingerprint_length_is_constant(ridge_image, noise_image):
    tiny = PixelBuffer.from_array(np.arange(100, dtype=np.uint8).reshape(10, 10))
    for image in (ridge_image, noise_image, tiny):
        assert fingerprint(image).shape == (4096,)


def test_same_image_has_zero_distance(ridge_image):
    a = fingerprint(ridge_image)
    b = fingerprint(PixelBuffer(ridge_image.width, ridge_image.height, ridge_image.data))

    assert hamming_distance(a, b) == 0
    assert fingerprint_similarity(a, b) == 100.0
    assert is_same_photo(a, b)


def test_distance_is_symmetric(ridge_image, other_ridge_image):
    a = fingerprint(ridge_image)
    b = fingerprint(other_ridge_image)
    assert hamming_distance(a, b) == hamming_distance(b, a)
    assert hamming_distance(a, b) > 0


def test_inverted_image_is_not_same_photo(noise_image):
    inverted = PixelBuffer.from_array(255 - noise_image.pixels[:, :, :3])
    assert not is_same_photo(fingerprint(noise_image), fingerprint(inverted))


def test_threshold_is_inclusive():
    a = np.zeros(4096, dtype=bool)
    b = a.copy()
    b[:150] = True
    assert is_same_photo(a, b)
    b[150] = True
    assert not is_same_photo(a, b)


def test_length_mismatch_raises():
    with pytest.raises(VectorLengthMismatch):
        hamming_distance(np.zeros(16, dtype=bool), np.zeros(8, dtype=bool))


def test_packed_fingerprint_restores_bits(ridge_image):
    bits = fingerprint(ridge_image)
    encoded = pack_fingerprint(bits)

    assert len(encoded) == 1024
    assert np.array_equal(unpack_fingerprint(encoded, bits.size), bits)
