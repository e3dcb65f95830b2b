"""Preprocessing module for MuzzlePrint

This module contains all image preprocessing functions for muzzle print processing:
- Image loading and downscaling
- Grayscale conversion
- 3x3 weighted smoothing blur
- Tiled, clip-limited histogram equalization

Every stage returns a new buffer; inputs are never modified.
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional
import cv2
import numpy as np

from muzzleprint.logger import get_logger
from muzzleprint.models import PixelBuffer, GrayscaleBuffer
from muzzleprint.config import (
    BLUR_KERNEL, CLAHE_CLIP_LIMIT, CLAHE_TILE_GRID, HISTOGRAM_BINS, MAX_IMAGE_SIZE
)

logger = get_logger("preprocessing")

_BLUR_KERNEL = np.asarray(BLUR_KERNEL, dtype=np.float64)
_BLUR_KERNEL = _BLUR_KERNEL / _BLUR_KERNEL.sum()


def load_image(path: Path, max_size: Optional[int] = MAX_IMAGE_SIZE) -> PixelBuffer:
    """Load a muzzle image as an RGBA pixel buffer.

    Args:
        path: Path to image file
        max_size: Longest allowed side; larger images are downscaled (None keeps size)

    Returns:
        RGBA PixelBuffer

    Raises:
        FileNotFoundError: If image cannot be loaded
    """
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise FileNotFoundError(f"Unable to read muzzle image: {path}")

    if image.dtype != np.uint8:
        image = cv2.convertScaleAbs(image, alpha=255.0 / max(float(image.max()), 1.0))

    if image.ndim == 2:
        rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    elif image.shape[2] == 4:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    else:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)

    if max_size is not None:
        height, width = rgba.shape[:2]
        longest = max(width, height)
        if longest > max_size:
            scale = max_size / float(longest)
            size = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))
            rgba = cv2.resize(rgba, size, interpolation=cv2.INTER_AREA)
            logger.debug("Downscaled %s from %dx%d to %dx%d", path, width, height, size[0], size[1])

    return PixelBuffer.from_array(rgba)


def _with_channels(rgb: np.ndarray, source: PixelBuffer) -> np.ndarray:
    """Stack uint8 RGB planes with the source alpha into a flat RGBA array."""
    height, width = source.shape
    out = np.empty((height, width, 4), dtype=np.uint8)
    out[:, :, :3] = rgb
    out[:, :, 3] = source.pixels[:, :, 3]
    return out.reshape(-1)


def to_grayscale(image: PixelBuffer) -> GrayscaleBuffer:
    """Convert to grayscale using Rec.601 luma.

    Luminance is rounded half-to-even into uint8 and written into R, G and B;
    alpha is preserved.
    """
    luma = np.clip(np.rint(image.luminance()), 0, 255).astype(np.uint8)
    rgb = np.repeat(luma[:, :, None], 3, axis=2)
    return GrayscaleBuffer(image.width, image.height, _with_channels(rgb, image))


def gaussian_blur(image: PixelBuffer) -> GrayscaleBuffer:
    """Apply the fixed 3x3 weighted blur (1-2-1 / 2-4-2 / 1-2-1, divided by 16).

    Border pixels sample with edge clamping (BORDER_REPLICATE). Each colour
    channel is filtered independently and rounded into uint8.
    """
    rgb = image.pixels[:, :, :3].astype(np.float64)
    blurred = cv2.filter2D(rgb, cv2.CV_64F, _BLUR_KERNEL, borderType=cv2.BORDER_REPLICATE)
    blurred = np.clip(np.rint(blurred), 0, 255).astype(np.uint8)
    return GrayscaleBuffer(image.width, image.height, _with_channels(blurred, image))


def clip_histogram(histogram: np.ndarray, clip_limit: float, pixel_count: int) -> np.ndarray:
    """Cap every bin at floor(clip_limit * pixel_count / 256).

    Clipped counts are discarded, not redistributed.
    """
    clip_count = int(np.floor((clip_limit * pixel_count) / HISTOGRAM_BINS))
    return np.minimum(histogram, clip_count)


def equalization_lut(tile: np.ndarray, clip_limit: float) -> np.ndarray:
    """Build the 256-entry remapping table of one tile.

    Args:
        tile: uint8 luminance values of the tile
        clip_limit: Histogram clip limit

    Returns:
        int64 lookup table mapping luminance to equalized luminance
    """
    pixel_count = int(tile.size)
    histogram = np.bincount(tile.reshape(-1), minlength=HISTOGRAM_BINS).astype(np.int64)
    histogram = clip_histogram(histogram, clip_limit, pixel_count)
    cdf = np.cumsum(histogram)

    nonzero = np.flatnonzero(cdf)
    cdf_min = int(cdf[nonzero[0]]) if nonzero.size else 0

    denominator = (pixel_count - cdf_min) * 256
    if denominator <= 0:
        return np.zeros(HISTOGRAM_BINS, dtype=np.int64)

    lut = ((cdf - cdf_min) * 255 * 256) // denominator
    return np.clip(lut, 0, 255)


def _tile_bounds(length: int, tiles: int):
    """Start/end offsets of each tile; the last tile absorbs the remainder."""
    size = length // tiles
    for index in range(tiles):
        start = index * size
        end = length if index == tiles - 1 else start + size
        if end > start:
            yield start, end


def equalize_local_contrast(image: PixelBuffer,
                            clip_limit: float = None,
                            tile_grid: int = None) -> GrayscaleBuffer:
    """Tiled, clip-limited histogram equalization of the luminance channel.

    The image is split into a tile_grid x tile_grid grid. Each tile is
    equalized independently from its own clipped histogram; tiles are not
    blended with their neighbours.

    Args:
        image: Grayscale input (channel 0 is used as luminance)
        clip_limit: Histogram clip limit (uses config default if None)
        tile_grid: Tiles per side (uses config default if None)

    Returns:
        Equalized grayscale buffer
    """
    if clip_limit is None:
        clip_limit = CLAHE_CLIP_LIMIT
    if tile_grid is None:
        tile_grid = CLAHE_TILE_GRID

    luma = image.pixels[:, :, 0]
    result = np.zeros_like(luma)

    for y0, y1 in _tile_bounds(image.height, tile_grid):
        for x0, x1 in _tile_bounds(image.width, tile_grid):
            tile = luma[y0:y1, x0:x1]
            lut = equalization_lut(tile, clip_limit)
            result[y0:y1, x0:x1] = lut[tile].astype(np.uint8)

    rgb = np.repeat(result[:, :, None], 3, axis=2)
    return GrayscaleBuffer(image.width, image.height, _with_channels(rgb, image))


def preprocess(image: PixelBuffer) -> GrayscaleBuffer:
    """Grayscale -> blur -> local contrast equalization."""
    gray = to_grayscale(image)
    blurred = gaussian_blur(gray)
    processed = equalize_local_contrast(blurred)
    logger.debug("Preprocessed %dx%d image", image.width, image.height)
    return processed
