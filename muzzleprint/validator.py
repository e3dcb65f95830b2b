"""Muzzle validation module for MuzzlePrint

This module decides whether an image plausibly shows a cattle muzzle print.
Seven independent statistics are computed on the raw image luminance:
- Texture (local binary patterns with a ridge-alternation bonus)
- Left/right mirror symmetry
- Sobel edge density
- Global contrast
- Concentric radial pattern
- Aspect ratio
- Colour naturalness

They are combined by a fixed weighted sum, then penalized by three rejection
heuristics (face-like layout, manufactured straight edges, missing detail).
Validation never raises for image content; a poor image yields a low score.
"""

from __future__ import annotations
from typing import Optional, Tuple
import cv2
import numpy as np
from scipy import ndimage

from muzzleprint.logger import get_logger
from muzzleprint.models import PixelBuffer, ValidationResult, ValidationScores, RejectionFlags
from muzzleprint.config import (
    ValidatorConfig, DEFAULT_VALIDATOR_CONFIG,
    VALIDATION_MESSAGES, VALIDATION_FALLBACK_MESSAGE
)

logger = get_logger("validator")

# LBP neighbour offsets (dy, dx); bit i is set when neighbour i >= centre
_LBP_OFFSETS = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, 1),
    (1, 1), (1, 0), (1, -1),
    (0, -1),
)


def _band_score(value: float, low: float, high: float, falloff: float) -> float:
    """1.0 inside [low, high], linear ramp from 0 below, linear decay above."""
    if low <= value <= high:
        return 1.0
    if value < low:
        return max(0.0, value / low)
    return max(0.0, 1.0 - (value - high) / falloff)


def _count_long_runs(similar: np.ndarray, min_length: int) -> int:
    """Count runs of near-identical neighbours, per row, spanning >= min_length pixels.

    Args:
        similar: Boolean (rows, cols-1) array, True where a pixel matches its right neighbour
        min_length: Minimum run length in pixels

    Returns:
        Number of qualifying runs
    """
    if similar.size == 0:
        return 0
    padded = np.pad(similar.astype(np.int8), ((0, 0), (1, 1)))
    edges = np.diff(padded, axis=1)
    starts = np.argwhere(edges == 1)
    ends = np.argwhere(edges == -1)
    # k similar neighbour pairs in a row join k + 1 pixels
    lengths = ends[:, 1] - starts[:, 1] + 1
    return int(np.count_nonzero(lengths >= min_length))


class MuzzleValidator:
    """Multi-signal plausibility scorer for muzzle print images.

    Attributes:
        config: Thresholds and weights used for every statistic
    """

    def __init__(self, config: Optional[ValidatorConfig] = None) -> None:
        self.config = config if config is not None else DEFAULT_VALIDATOR_CONFIG

    # ------------------------------------------------------------------
    # Sub-scores

    def texture_score(self, gray: np.ndarray) -> float:
        """Fraction of mid-band LBP codes plus a bonus for ridge-like alternation."""
        h, w = gray.shape
        if h < 3 or w < 3:
            return 0.0

        center = gray[1:-1, 1:-1]
        bits = np.stack([
            gray[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx] >= center
            for dy, dx in _LBP_OFFSETS
        ])
        weights = (1 << np.arange(8)).reshape(8, 1, 1)
        codes = (bits.astype(np.int64) * weights).sum(axis=0)

        textured = (codes > self.config.lbp_low) & (codes < self.config.lbp_high)
        transitions = (bits != np.roll(bits, -1, axis=0)).sum(axis=0)
        ridge_like = transitions >= self.config.ridge_min_transitions

        score = textured.mean() + self.config.ridge_bonus_weight * ridge_like.mean()
        return float(min(1.0, score))

    def symmetry_score(self, gray: np.ndarray) -> float:
        """Average mirrored-pair agreement 1 - |left - right| / 255 over all rows."""
        mid = gray.shape[1] // 2
        if mid == 0:
            return 1.0
        left = gray[:, :mid]
        right = gray[:, ::-1][:, :mid]
        return float(np.mean(1.0 - np.abs(left - right) / 255.0))

    def edge_density_score(self, gray: np.ndarray) -> float:
        """Fraction of interior pixels with in-band Sobel magnitude, mapped onto the ideal range."""
        h, w = gray.shape
        if h < 3 or w < 3:
            return 0.0

        gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)[1:-1, 1:-1]
        gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)[1:-1, 1:-1]
        magnitude = np.hypot(gx, gy)

        in_band = (magnitude > self.config.edge_magnitude_low) & (magnitude < self.config.edge_magnitude_high)
        density = float(in_band.mean())

        low = self.config.edge_density_ideal_low
        high = self.config.edge_density_ideal_high
        return _band_score(density, low, high, falloff=high)

    def contrast_score(self, gray: np.ndarray) -> float:
        """Global luminance standard deviation mapped onto the ideal band."""
        std = float(np.std(np.rint(gray)))
        return _band_score(
            std,
            self.config.contrast_ideal_low,
            self.config.contrast_ideal_high,
            falloff=self.config.contrast_falloff,
        )

    def radial_pattern_score(self, gray: np.ndarray) -> float:
        """Deviation of concentric ring means around the image centre."""
        h, w = gray.shape
        cy, cx = h // 2, w // 2
        max_radius = min(cx, cy)
        if max_radius == 0:
            return 0.0

        rings = self.config.radial_rings
        yy, xx = np.indices(gray.shape)
        distance = np.hypot(xx - cx, yy - cy)
        ring = np.floor(distance / max_radius * rings).astype(np.int64)
        inside = ring < rings

        sums = np.bincount(ring[inside], weights=gray[inside], minlength=rings)
        counts = np.bincount(ring[inside], minlength=rings)
        populated = counts > 0
        if np.count_nonzero(populated) < 2:
            return 0.0

        ring_means = sums[populated] / counts[populated]
        score = np.std(ring_means) / 255.0 * self.config.radial_multiplier
        return float(min(1.0, score))

    def aspect_ratio_score(self, width: int, height: int) -> float:
        """Plausibility of the width/height ratio for a muzzle close-up."""
        ratio = width / float(height)
        return _band_score(
            ratio,
            self.config.aspect_ratio_low,
            self.config.aspect_ratio_high,
            falloff=self.config.aspect_ratio_high,
        )

    def color_naturalness_score(self, image: PixelBuffer) -> float:
        """Fraction of sampled pixels with muted, non-neon, mid-brightness colour."""
        rgb = image.pixels[:, :, :3].reshape(-1, 3)
        sample_count = min(rgb.shape[0], self.config.color_max_samples)
        indices = np.linspace(0, rgb.shape[0] - 1, num=sample_count).astype(np.int64)
        samples = np.sort(rgb[indices].astype(np.float64), axis=1)

        spread = samples[:, 2] - samples[:, 0]
        neon = (samples[:, 2] > self.config.color_neon_high) & (samples[:, 1] < self.config.color_neon_low)
        brightness = samples.mean(axis=1)

        natural = (
            (spread < self.config.color_saturation_threshold)
            & ~neon
            & (brightness >= self.config.color_brightness_low)
            & (brightness <= self.config.color_brightness_high)
        )
        return float(natural.mean())

    # ------------------------------------------------------------------
    # Rejection heuristics

    def looks_like_face(self, gray: np.ndarray) -> bool:
        """Eye-like dark blobs in the upper third plus a dark mouth band in the lower third."""
        h, w = gray.shape
        third = h // 3
        if third == 0:
            return False

        dark_threshold = self.config.face_dark_threshold
        upper = gray[:third]
        labels, blob_count = ndimage.label(upper < dark_threshold)
        if blob_count < self.config.face_min_eye_blobs:
            return False

        areas = np.bincount(labels.ravel())[1:]
        max_area = self.config.face_eye_max_area_ratio * upper.size
        eye_blobs = np.count_nonzero((areas >= self.config.face_eye_min_area) & (areas <= max_area))
        if eye_blobs < self.config.face_min_eye_blobs:
            return False

        lower = gray[h - third:, w // 4:w - w // 4]
        if lower.size == 0:
            return False
        row_dark = (lower < dark_threshold).mean(axis=1)
        return bool(np.any(row_dark >= self.config.face_mouth_dark_ratio))

    def looks_like_artificial_object(self, gray: np.ndarray) -> bool:
        """Many long runs of near-identical pixels along rows or columns."""
        h, w = gray.shape
        tolerance = self.config.artificial_similarity_tolerance
        run_length = self.config.artificial_run_length

        row_similar = np.abs(np.diff(gray, axis=1)) <= tolerance
        col_similar = np.abs(np.diff(gray, axis=0)).T <= tolerance
        long_runs = _count_long_runs(row_similar, run_length) + _count_long_runs(col_similar, run_length)

        return long_runs > self.config.artificial_run_ratio * (h + w)

    def has_insufficient_detail(self, gray: np.ndarray) -> bool:
        return float(np.std(gray)) < self.config.detail_std_floor

    # ------------------------------------------------------------------
    # Combination

    def scores(self, image: PixelBuffer, gray: Optional[np.ndarray] = None) -> ValidationScores:
        """Compute the seven sub-scores of an image."""
        if gray is None:
            gray = image.luminance()
        return ValidationScores(
            texture=self.texture_score(gray),
            symmetry=self.symmetry_score(gray),
            edge_density=self.edge_density_score(gray),
            contrast=self.contrast_score(gray),
            radial_pattern=self.radial_pattern_score(gray),
            aspect_ratio=self.aspect_ratio_score(image.width, image.height),
            color_naturalness=self.color_naturalness_score(image),
        )

    def flags(self, gray: np.ndarray) -> RejectionFlags:
        return RejectionFlags(
            looks_like_face=self.looks_like_face(gray),
            looks_like_artificial_object=self.looks_like_artificial_object(gray),
            insufficient_detail=self.has_insufficient_detail(gray),
        )

    def combine(self, scores: ValidationScores, flags: RejectionFlags) -> Tuple[float, float]:
        """Weighted sum of sub-scores and its penalized value.

        Returns:
            Tuple of (raw_score, adjusted_score), both in [0, 1]
        """
        weights = self.config.weights
        values = scores.as_dict()
        raw = sum(weights[name] * values[name] for name in weights)
        raw = float(np.clip(raw, 0.0, 1.0))

        adjusted = raw
        if flags.looks_like_face:
            adjusted *= self.config.face_penalty
        if flags.looks_like_artificial_object:
            adjusted *= self.config.artificial_penalty
        if flags.insufficient_detail:
            adjusted *= self.config.detail_penalty

        return raw, float(np.clip(adjusted, 0.0, 1.0))

    def validate(self, image: PixelBuffer) -> ValidationResult:
        """Score an image as a muzzle print.

        Args:
            image: Raw (unprocessed) RGBA image

        Returns:
            ValidationResult with confidence, validity gate, sub-scores, flags and message
        """
        gray = image.luminance()
        scores = self.scores(image, gray)
        flags = self.flags(gray)
        raw, confidence = self.combine(scores, flags)

        is_valid = confidence >= self.config.acceptance_threshold and not flags.any
        logger.debug(
            "Validated %dx%d image: raw=%.3f confidence=%.3f valid=%s flags=%s",
            image.width, image.height, raw, confidence, is_valid, flags,
        )

        return ValidationResult(
            confidence=confidence,
            is_valid=is_valid,
            scores=scores,
            flags=flags,
            message=validation_message(confidence),
            raw_score=raw,
        )


def validation_message(score: float) -> str:
    """Human-readable verdict for a validation score bucket."""
    for minimum, message in VALIDATION_MESSAGES:
        if score >= minimum:
            return message
    return VALIDATION_FALLBACK_MESSAGE


def validate(image: PixelBuffer, config: Optional[ValidatorConfig] = None) -> ValidationResult:
    """Validate a raw image with the given (or default) validator configuration."""
    return MuzzleValidator(config).validate(image)
