"""Data structures for MuzzlePrint

This module defines the core data classes used throughout the muzzle print engine.
These classes are shared across all modules (preprocessing, validator, extractor,
fingerprint, matching).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import numpy as np

from muzzleprint.config import (
    LUMA_WEIGHTS, MATCH_LABELS, NO_MATCH_LABEL,
    VALIDATION_LEVEL_SUCCESS, VALIDATION_LEVEL_WARNING
)

CHANNELS = 4  # RGBA


# ---------------------------------------------------------------------------
# Errors


class MuzzlePrintError(Exception):
    """Base class for muzzle print engine errors."""


class InvalidImageDimensions(MuzzlePrintError, ValueError):
    """Image has zero area or its sample data does not match its dimensions."""


class VectorLengthMismatch(MuzzlePrintError, ValueError):
    """Two vectors or fingerprints of unequal length were compared."""


class ZeroNormVector(MuzzlePrintError, ValueError):
    """A compared vector has zero norm."""


# ---------------------------------------------------------------------------
# Image buffers


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Immutable RGBA image stored as one flat uint8 array.

    Sample ``c`` of the pixel at ``(row, col)`` lives at
    ``data[(row * width + col) * 4 + c]``.

    Attributes:
        width: Image width (pixels)
        height: Image height (pixels)
        data: Flat read-only uint8 array of length width * height * 4
    """
    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        """Validate dimensions and freeze the sample array."""
        if int(self.width) <= 0 or int(self.height) <= 0:
            raise InvalidImageDimensions(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )

        data = np.asarray(self.data)
        expected = int(self.width) * int(self.height) * CHANNELS
        if data.ndim != 1 or data.size != expected:
            raise InvalidImageDimensions(
                f"Expected {expected} samples for a {self.width}x{self.height} RGBA image, "
                f"got array of shape {data.shape}"
            )

        data = np.array(data, dtype=np.uint8, copy=True)
        data.flags.writeable = False
        object.__setattr__(self, "width", int(self.width))
        object.__setattr__(self, "height", int(self.height))
        object.__setattr__(self, "data", data)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Build a buffer from an (H, W), (H, W, 3) or (H, W, 4) uint8 array in RGB(A) order.

        Grayscale input is replicated into the colour channels and missing alpha
        is filled with 255.

        Raises:
            InvalidImageDimensions: If the array is empty or not an image shape
        """
        image = np.asarray(array)
        if image.ndim == 2:
            image = np.repeat(image[:, :, None], 3, axis=2)

        if image.ndim != 3 or image.shape[2] not in (3, 4):
            raise InvalidImageDimensions(f"Unsupported image array shape {image.shape}")

        height, width = image.shape[:2]
        if width == 0 or height == 0:
            raise InvalidImageDimensions(f"Image dimensions must be positive, got {width}x{height}")

        if image.shape[2] == 3:
            alpha = np.full((height, width, 1), 255, dtype=np.uint8)
            image = np.concatenate([image.astype(np.uint8), alpha], axis=2)

        return cls(width=width, height=height, data=image.astype(np.uint8).reshape(-1))

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (height, width, 4) view of the samples."""
        return self.data.reshape(self.height, self.width, CHANNELS)

    @property
    def shape(self):
        return self.height, self.width

    def luminance(self) -> np.ndarray:
        """Rec.601 luma of every pixel as a float64 (height, width) array."""
        rgb = self.pixels[:, :, :3].astype(np.float64)
        r_weight, g_weight, b_weight = LUMA_WEIGHTS
        return r_weight * rgb[:, :, 0] + g_weight * rgb[:, :, 1] + b_weight * rgb[:, :, 2]


class GrayscaleBuffer(PixelBuffer):
    """PixelBuffer whose colour channels all hold the luminance value.

    Produced by the preprocessing stages; callers never build one directly.
    """

    def luminance(self) -> np.ndarray:
        return self.pixels[:, :, 0].astype(np.float64)


# ---------------------------------------------------------------------------
# Validation


@dataclass(frozen=True)
class ValidationScores:
    """Sub-scores of the muzzle validator, each in [0.0, 1.0]."""
    texture: float
    symmetry: float
    edge_density: float
    contrast: float
    radial_pattern: float
    aspect_ratio: float
    color_naturalness: float

    def as_dict(self) -> dict:
        return {
            "texture": self.texture,
            "symmetry": self.symmetry,
            "edge_density": self.edge_density,
            "contrast": self.contrast,
            "radial_pattern": self.radial_pattern,
            "aspect_ratio": self.aspect_ratio,
            "color_naturalness": self.color_naturalness,
        }


@dataclass(frozen=True)
class RejectionFlags:
    """Binary heuristics that penalize the validation score."""
    looks_like_face: bool = False
    looks_like_artificial_object: bool = False
    insufficient_detail: bool = False

    @property
    def any(self) -> bool:
        return self.looks_like_face or self.looks_like_artificial_object or self.insufficient_detail


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of muzzle print validation.

    Attributes:
        confidence: Penalized overall score [0.0, 1.0]
        is_valid: Whether the image passes the acceptance gate
        scores: The seven sub-scores
        flags: Rejection heuristics that fired
        message: Human-readable verdict for the confidence bucket
        raw_score: Weighted sub-score sum before penalties [0.0, 1.0]
    """
    confidence: float
    is_valid: bool
    scores: ValidationScores
    flags: RejectionFlags
    message: str
    raw_score: float = 0.0

    @property
    def level(self) -> str:
        """Presentation level: "success", "warning" or "error"."""
        if self.confidence >= VALIDATION_LEVEL_SUCCESS:
            return "success"
        if self.confidence >= VALIDATION_LEVEL_WARNING:
            return "warning"
        return "error"


# ---------------------------------------------------------------------------
# Enrollment and matching


@dataclass(frozen=True, eq=False)
class EnrolledSignature:
    """Previously enrolled muzzle signature supplied by the storage layer.

    Attributes:
        identifier: Opaque record identifier
        features: 28-D feature vector
        fingerprint: Optional perceptual fingerprint (bool array)
        bio_data: Optional normalized categorical attribute vector
    """
    identifier: str
    features: np.ndarray
    fingerprint: Optional[np.ndarray] = None
    bio_data: Optional[np.ndarray] = None


@dataclass(frozen=True)
class MatchResult:
    """Score of one enrolled signature against a query.

    Attributes:
        identifier: Identifier of the enrolled signature
        match_percentage: Combined match percentage [0, 100]
        raw_percentage: Un-boosted feature similarity [0, 100]
        is_exact_duplicate: Whether the fingerprints mark the same photograph
        duplicate_score: Fingerprint similarity [0, 100], 0 when not compared
        bio_match_percentage: Bio-data agreement [0, 100] when fused
    """
    identifier: str
    match_percentage: float
    raw_percentage: float
    is_exact_duplicate: bool = False
    duplicate_score: float = 0.0
    bio_match_percentage: Optional[float] = None

    @property
    def label(self) -> str:
        return match_label(self.match_percentage)


def match_label(percentage: float) -> str:
    """Qualitative label for a match percentage."""
    for minimum, label in MATCH_LABELS:
        if percentage >= minimum:
            return label
    return NO_MATCH_LABEL
