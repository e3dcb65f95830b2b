"""Perceptual fingerprint module for MuzzlePrint

A perceptual fingerprint is a mean-thresholded bit summary of the raw image on
a fixed 64x64 grid. It detects re-submission of the same photograph; it is not
used for biometric identity matching.
"""

from __future__ import annotations
import numpy as np

from muzzleprint.models import PixelBuffer, VectorLengthMismatch
from muzzleprint.config import FINGERPRINT_GRID_SIZE, DUPLICATE_HAMMING_THRESHOLD


def fingerprint(image: PixelBuffer, grid_size: int = FINGERPRINT_GRID_SIZE) -> np.ndarray:
    """Compute the perceptual fingerprint of a raw image.

    The image is downsampled by nearest-sample lookup (source index
    ``(i * dimension) // grid_size``); a cell's bit is set when its luminance
    exceeds the grid mean.

    Args:
        image: Raw RGBA image
        grid_size: Cells per side (default 64 -> 4096 bits)

    Returns:
        Boolean array of grid_size ** 2 bits, row-major
    """
    rows = (np.arange(grid_size) * image.height) // grid_size
    cols = (np.arange(grid_size) * image.width) // grid_size
    grid = image.luminance()[np.ix_(rows, cols)]
    return (grid > grid.mean()).reshape(-1)


def hamming_distance(a: np.ndarray, b: np.ndarray) -> int:
    """Number of differing bit positions.

    Raises:
        VectorLengthMismatch: If the fingerprints differ in length
    """
    bits_a = np.asarray(a, dtype=bool).reshape(-1)
    bits_b = np.asarray(b, dtype=bool).reshape(-1)
    if bits_a.shape != bits_b.shape:
        raise VectorLengthMismatch(
            f"Fingerprint length mismatch: {bits_a.shape[0]} vs {bits_b.shape[0]}"
        )
    return int(np.count_nonzero(bits_a != bits_b))


def fingerprint_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Similarity percentage 100 * (1 - distance / length)."""
    distance = hamming_distance(a, b)
    length = np.asarray(a).size
    if length == 0:
        return 0.0
    return 100.0 * (1.0 - distance / float(length))


def is_same_photo(a: np.ndarray, b: np.ndarray, threshold: int = DUPLICATE_HAMMING_THRESHOLD) -> bool:
    """Whether two fingerprints are within the duplicate-photo threshold."""
    return hamming_distance(a, b) <= threshold


def pack_fingerprint(bits: np.ndarray) -> str:
    """Encode a fingerprint as a hex string (8 bits per byte, MSB first)."""
    return np.packbits(np.asarray(bits, dtype=np.uint8)).tobytes().hex()


def unpack_fingerprint(encoded: str, bit_length: int) -> np.ndarray:
    """Decode a hex string produced by pack_fingerprint."""
    packed = np.frombuffer(bytes.fromhex(encoded), dtype=np.uint8)
    if packed.size * 8 < bit_length:
        raise VectorLengthMismatch(
            f"Encoded fingerprint holds {packed.size * 8} bits, expected {bit_length}"
        )
    return np.unpackbits(packed)[:bit_length].astype(bool)
