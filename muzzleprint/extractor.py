"""Feature extraction module for MuzzlePrint

This module turns a preprocessed (grayscale, blurred, contrast-equalized) muzzle
image into the fixed 28-dimensional feature vector:

    0-15   4x4 grid mean intensities
    16-19  2x2 quadrant edge densities
    20-23  2x2 quadrant intensity deviation (texture)
    24-27  4 concentric radial band means, center-out

Every value is normalized and clamped into [0, 1].
"""

from __future__ import annotations
from typing import Iterator, List, Tuple
import numpy as np

from muzzleprint.models import PixelBuffer
from muzzleprint.config import (
    FEATURE_VECTOR_DIM, FEATURE_GRID_SIZE, FEATURE_QUADRANT_SIZE,
    FEATURE_RADIAL_BANDS, FEATURE_EDGE_THRESHOLD
)


def _cells(width: int, height: int, divisions: int) -> Iterator[Tuple[int, int, int, int]]:
    """Yield (y0, y1, x0, x1) of a divisions x divisions partition, row-major.

    Cell size is floor(dimension / divisions); trailing pixels are not covered.
    """
    cell_w = width // divisions
    cell_h = height // divisions
    for gy in range(divisions):
        for gx in range(divisions):
            y0 = gy * cell_h
            x0 = gx * cell_w
            yield y0, min(y0 + cell_h, height), x0, min(x0 + cell_w, width)


def grid_means(gray: np.ndarray, grid_size: int = FEATURE_GRID_SIZE) -> List[float]:
    """Mean intensity / 255 of each grid cell."""
    h, w = gray.shape
    features = []
    for y0, y1, x0, x1 in _cells(w, h, grid_size):
        cell = gray[y0:y1, x0:x1]
        features.append(float(cell.mean()) / 255.0 if cell.size else 0.0)
    return features


def quadrant_edge_densities(gray: np.ndarray,
                            quadrant_size: int = FEATURE_QUADRANT_SIZE,
                            threshold: float = FEATURE_EDGE_THRESHOLD) -> List[float]:
    """Fraction of quadrant pixels whose right or lower neighbour differs by more than threshold.

    The first row and column of each quadrant are skipped, and the last image
    row and column are never sampled as a centre.
    """
    h, w = gray.shape
    features = []
    for qy0, qy1, qx0, qx1 in _cells(w, h, quadrant_size):
        y0, y1 = qy0 + 1, min(qy1, h - 1)
        x0, x1 = qx0 + 1, min(qx1, w - 1)
        if y1 <= y0 or x1 <= x0:
            features.append(0.0)
            continue

        block = gray[y0:y1, x0:x1]
        dx = np.abs(block - gray[y0:y1, x0 + 1:x1 + 1])
        dy = np.abs(block - gray[y0 + 1:y1 + 1, x0:x1])
        edges = (dx > threshold) | (dy > threshold)
        features.append(float(edges.mean()))
    return features


def quadrant_deviations(gray: np.ndarray, quadrant_size: int = FEATURE_QUADRANT_SIZE) -> List[float]:
    """Population standard deviation / 255 of each quadrant."""
    h, w = gray.shape
    features = []
    for y0, y1, x0, x1 in _cells(w, h, quadrant_size):
        quadrant = gray[y0:y1, x0:x1]
        features.append(float(quadrant.std()) / 255.0 if quadrant.size else 0.0)
    return features


def radial_band_means(gray: np.ndarray, bands: int = FEATURE_RADIAL_BANDS) -> List[float]:
    """Mean intensity / 255 of concentric bands [r/bands*R, (r+1)/bands*R), R = min(cx, cy)."""
    h, w = gray.shape
    cy, cx = h // 2, w // 2
    max_radius = min(cx, cy)

    yy, xx = np.indices(gray.shape)
    distance = np.hypot(xx - cx, yy - cy)

    features = []
    for band in range(bands):
        inner = (band / bands) * max_radius
        outer = ((band + 1) / bands) * max_radius
        mask = (distance >= inner) & (distance < outer)
        features.append(float(gray[mask].mean()) / 255.0 if mask.any() else 0.0)
    return features


def extract_features(image: PixelBuffer) -> np.ndarray:
    """Extract the 28-D feature vector from a preprocessed image.

    Args:
        image: Preprocessed grayscale buffer

    Returns:
        float64 array of FEATURE_VECTOR_DIM values clamped to [0, 1]
    """
    gray = image.luminance()

    features: List[float] = []
    features.extend(grid_means(gray))
    features.extend(quadrant_edge_densities(gray))
    features.extend(quadrant_deviations(gray))
    features.extend(radial_band_means(gray))

    vector = np.clip(np.asarray(features, dtype=np.float64), 0.0, 1.0)
    if vector.shape[0] != FEATURE_VECTOR_DIM:
        raise RuntimeError(f"Feature vector has {vector.shape[0]} values, expected {FEATURE_VECTOR_DIM}")
    return vector
