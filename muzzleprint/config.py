"""Configuration file for MuzzlePrint

This module contains all configurable parameters for the muzzle print analysis
and matching engine.

Modify these values to tune the system behavior without changing the core code.
The blend weights and thresholds below are empirical defaults, not values fitted
on a labeled dataset.
"""

import os
from dataclasses import dataclass
from pathlib import Path

# ============================================================================
# FILE PATHS AND EXTENSIONS
# ============================================================================

DEFAULT_GALLERY_PATH = Path("muzzle_gallery.json")  # Default enrolled-signature gallery
IMAGE_EXTENSIONS = {".bmp", ".png", ".jpg", ".jpeg", ".webp", ".tif", ".tiff"}  # Supported image formats

# Captured images are downscaled so their longer side fits this size
MAX_IMAGE_SIZE: int = 800

# ============================================================================
# IMAGE PREPROCESSING
# ============================================================================

# Rec.601 luma coefficients (R, G, B)
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

# 3x3 smoothing kernel, normalized by its total weight (16)
BLUR_KERNEL = (
    (1.0, 2.0, 1.0),
    (2.0, 4.0, 2.0),
    (1.0, 2.0, 1.0),
)

# Tiled histogram equalization
CLAHE_CLIP_LIMIT: float = 2.0  # Bin cap = floor(clip_limit * tile_pixels / 256)
CLAHE_TILE_GRID: int = 8  # Tiles per side (8x8 grid)
HISTOGRAM_BINS: int = 256

# ============================================================================
# FEATURE EXTRACTION
# ============================================================================

FEATURE_VECTOR_DIM: int = 28  # Total feature vector dimension
FEATURE_GRID_SIZE: int = 4  # 4x4 grid of mean intensities (16 features)
FEATURE_QUADRANT_SIZE: int = 2  # 2x2 quadrants for edge density and deviation
FEATURE_RADIAL_BANDS: int = 4  # Concentric bands, center-out
FEATURE_EDGE_THRESHOLD: float = 25.0  # Neighbour difference counted as an edge

# ============================================================================
# PERCEPTUAL FINGERPRINT
# ============================================================================

FINGERPRINT_GRID_SIZE: int = 64  # 64x64 grid -> 4096 bits
FINGERPRINT_BIT_LENGTH: int = FINGERPRINT_GRID_SIZE * FINGERPRINT_GRID_SIZE

# Maximum Hamming distance at which two fingerprints are the same photograph
DUPLICATE_HAMMING_THRESHOLD: int = 150

# ============================================================================
# MUZZLE VALIDATION
# ============================================================================


@dataclass(frozen=True)
class ValidatorConfig:
    """Thresholds and weights used by the muzzle validator.

    Attributes:
        lbp_low: LBP codes strictly above this value count as textured
        lbp_high: LBP codes strictly below this value count as textured
        ridge_min_transitions: Circular bit transitions marking a ridge-like LBP code
        ridge_bonus_weight: Weight of the ridge-like fraction added to the texture score
        edge_magnitude_low: Sobel magnitude lower bound (exclusive) of the edge band
        edge_magnitude_high: Sobel magnitude upper bound (exclusive) of the edge band
        edge_density_ideal_low: Lower end of the ideal in-band pixel fraction
        edge_density_ideal_high: Upper end of the ideal in-band pixel fraction
        contrast_ideal_low: Lower end of the ideal luminance standard deviation
        contrast_ideal_high: Upper end of the ideal luminance standard deviation
        contrast_falloff: Deviation above the ideal band at which the score reaches 0
        radial_rings: Number of concentric rings for the radial score
        radial_multiplier: Scale applied to the normalized ring-mean deviation
        aspect_ratio_low: Lower end of the plausible width/height ratio
        aspect_ratio_high: Upper end of the plausible width/height ratio
        color_max_samples: Maximum number of pixels sampled for colour naturalness
        color_saturation_threshold: Channel spread at or above which a pixel is unnatural
        color_neon_high: Channel value above which a dominant primary is neon
        color_neon_low: Value below which the remaining channels make a primary neon
        color_brightness_low: Minimum natural mean brightness
        color_brightness_high: Maximum natural mean brightness
        face_dark_threshold: Luminance below which a pixel is "very dark"
        face_min_eye_blobs: Dark blobs in the upper third needed for eye-like regions
        face_eye_min_area: Smallest dark blob counted as eye-like (pixels)
        face_eye_max_area_ratio: Largest eye-like blob as a fraction of the upper third
        face_mouth_dark_ratio: Dark fraction of a lower-third row's central half for a mouth band
        artificial_similarity_tolerance: Maximum adjacent difference for "near-identical"
        artificial_run_length: Minimum run length counted as a manufactured edge
        artificial_run_ratio: Long-run count, relative to rows + columns, that flags an object
        detail_std_floor: Luminance standard deviation below which detail is insufficient
        face_penalty: Score multiplier when the image looks like a face
        artificial_penalty: Score multiplier when the image looks manufactured
        detail_penalty: Score multiplier when the image lacks detail
        acceptance_threshold: Minimum adjusted score for a valid muzzle print
    """
    lbp_low: int = 30
    lbp_high: int = 220
    ridge_min_transitions: int = 4
    ridge_bonus_weight: float = 0.2

    edge_magnitude_low: float = 25.0
    edge_magnitude_high: float = 120.0
    edge_density_ideal_low: float = 0.15
    edge_density_ideal_high: float = 0.40

    contrast_ideal_low: float = 40.0
    contrast_ideal_high: float = 80.0
    contrast_falloff: float = 100.0

    radial_rings: int = 8
    radial_multiplier: float = 4.0

    aspect_ratio_low: float = 0.7
    aspect_ratio_high: float = 1.5

    color_max_samples: int = 10000
    color_saturation_threshold: float = 100.0
    color_neon_high: float = 200.0
    color_neon_low: float = 80.0
    color_brightness_low: float = 30.0
    color_brightness_high: float = 230.0

    face_dark_threshold: float = 50.0
    face_min_eye_blobs: int = 2
    face_eye_min_area: int = 4
    face_eye_max_area_ratio: float = 0.02
    face_mouth_dark_ratio: float = 0.6

    artificial_similarity_tolerance: float = 2.0
    artificial_run_length: int = 40
    artificial_run_ratio: float = 0.25

    detail_std_floor: float = 10.0

    face_penalty: float = 0.3
    artificial_penalty: float = 0.4
    detail_penalty: float = 0.5

    acceptance_threshold: float = 0.45

    # Weighted sum of the seven sub-scores (must sum to 1.0)
    weight_texture: float = 0.25
    weight_edge_density: float = 0.20
    weight_symmetry: float = 0.15
    weight_contrast: float = 0.15
    weight_radial_pattern: float = 0.12
    weight_color_naturalness: float = 0.08
    weight_aspect_ratio: float = 0.05

    def __post_init__(self) -> None:
        """Validate validator settings after initialization."""
        if not (0 <= self.lbp_low < self.lbp_high <= 255):
            raise ValueError(f"LBP band must satisfy 0 <= low < high <= 255, got ({self.lbp_low}, {self.lbp_high})")

        if self.edge_magnitude_low >= self.edge_magnitude_high:
            raise ValueError("edge_magnitude_low must be below edge_magnitude_high")

        if not (0.0 < self.edge_density_ideal_low <= self.edge_density_ideal_high < 1.0):
            raise ValueError("Ideal edge density band must lie inside (0, 1)")

        if not (0.0 < self.contrast_ideal_low <= self.contrast_ideal_high):
            raise ValueError("Ideal contrast band must be positive and ordered")

        if not (0.0 < self.aspect_ratio_low <= self.aspect_ratio_high):
            raise ValueError("Aspect ratio band must be positive and ordered")

        if self.radial_rings < 2:
            raise ValueError(f"radial_rings must be >= 2, got {self.radial_rings}")

        for name in ("face_penalty", "artificial_penalty", "detail_penalty", "acceptance_threshold"):
            value = getattr(self, name)
            if not (0.0 < value <= 1.0):
                raise ValueError(f"{name} must be in (0.0, 1.0], got {value}")

        weight_sum = sum(self.weights.values())
        if not (0.99 <= weight_sum <= 1.01):
            raise ValueError(f"Validator weights must sum to 1.0 (got {weight_sum})")

    @property
    def weights(self) -> dict:
        return {
            "texture": self.weight_texture,
            "symmetry": self.weight_symmetry,
            "edge_density": self.weight_edge_density,
            "contrast": self.weight_contrast,
            "radial_pattern": self.weight_radial_pattern,
            "aspect_ratio": self.weight_aspect_ratio,
            "color_naturalness": self.weight_color_naturalness,
        }


DEFAULT_VALIDATOR_CONFIG = ValidatorConfig()

# Validation message buckets (minimum score, message), checked top-down
VALIDATION_MESSAGES = (
    (0.75, "Excellent muzzle print quality"),
    (0.60, "Good muzzle print detected"),
    (0.45, "Acceptable muzzle print"),
    (0.30, "Low confidence - may not be a muzzle"),
)
VALIDATION_FALLBACK_MESSAGE = "Warning: Image does not appear to be a muzzle print"

# Presentation level of a validation confidence
VALIDATION_LEVEL_SUCCESS: float = 0.60
VALIDATION_LEVEL_WARNING: float = 0.45

# ============================================================================
# MATCHING CONFIGURATION
# ============================================================================


@dataclass(frozen=True)
class MatchingConfig:
    """Blend weights and thresholds for similarity ranking.

    Attributes:
        cosine_weight: Weight of cosine similarity in the raw score
        euclidean_weight: Weight of inverse-Euclidean similarity in the raw score
        feature_weight: Weight of the raw score when fusing bio-data
        bio_weight: Weight of the bio-data score when fusing bio-data
        high_confidence_threshold: Validator confidence that earns a boost
        confidence_boost: Multiplicative boost for high-confidence queries
        duplicate_threshold: Maximum Hamming distance for an exact duplicate
        duplicate_score: Match percentage forced onto exact duplicates
    """
    cosine_weight: float = 0.7
    euclidean_weight: float = 0.3
    feature_weight: float = 0.75
    bio_weight: float = 0.25
    high_confidence_threshold: float = 0.60
    confidence_boost: float = 1.05
    duplicate_threshold: int = DUPLICATE_HAMMING_THRESHOLD
    duplicate_score: float = 99.9

    def __post_init__(self) -> None:
        """Validate matching settings after initialization."""
        if not (0.99 <= self.cosine_weight + self.euclidean_weight <= 1.01):
            raise ValueError(
                f"cosine_weight + euclidean_weight must sum to 1.0 (got {self.cosine_weight + self.euclidean_weight})"
            )

        if not (0.99 <= self.feature_weight + self.bio_weight <= 1.01):
            raise ValueError(
                f"feature_weight + bio_weight must sum to 1.0 (got {self.feature_weight + self.bio_weight})"
            )

        if self.confidence_boost < 1.0:
            raise ValueError(f"Confidence boost must be >= 1.0, got {self.confidence_boost}")

        if self.duplicate_threshold < 0:
            raise ValueError(f"Duplicate threshold must be non-negative, got {self.duplicate_threshold}")

        if not (0.0 <= self.duplicate_score <= 100.0):
            raise ValueError(f"Duplicate score must be in [0, 100], got {self.duplicate_score}")


DEFAULT_MATCHING_CONFIG = MatchingConfig()

# Qualitative match labels (minimum percentage, label), checked top-down
MATCH_LABELS = (
    (85.0, "Excellent Match"),
    (70.0, "Good Match"),
    (50.0, "Possible Match"),
)
NO_MATCH_LABEL = "No Match"

# ============================================================================
# LOGGING AND DEBUG
# ============================================================================

LOG_DIR = Path(os.environ.get("MUZZLEPRINT_LOG_DIR", "logs"))
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB per file
LOG_BACKUP_COUNT = 5  # Keep 5 backup files

# Echo biometric log records to the console
VERBOSE: bool = False

# ============================================================================
# VALIDATION
# ============================================================================

def validate_config():
    """Validate configuration consistency."""
    errors = []

    if CLAHE_CLIP_LIMIT <= 0.0:
        errors.append(f"CLAHE_CLIP_LIMIT must be positive (got {CLAHE_CLIP_LIMIT})")

    if CLAHE_TILE_GRID <= 0:
        errors.append(f"CLAHE_TILE_GRID must be positive (got {CLAHE_TILE_GRID})")

    expected_dim = (FEATURE_GRID_SIZE ** 2) + 2 * (FEATURE_QUADRANT_SIZE ** 2) + FEATURE_RADIAL_BANDS
    if FEATURE_VECTOR_DIM != expected_dim:
        errors.append(f"FEATURE_VECTOR_DIM must equal {expected_dim} (got {FEATURE_VECTOR_DIM})")

    if FINGERPRINT_GRID_SIZE <= 0:
        errors.append(f"FINGERPRINT_GRID_SIZE must be positive (got {FINGERPRINT_GRID_SIZE})")

    if not (0 <= DUPLICATE_HAMMING_THRESHOLD < FINGERPRINT_BIT_LENGTH):
        errors.append(
            f"DUPLICATE_HAMMING_THRESHOLD must be in [0, {FINGERPRINT_BIT_LENGTH}) (got {DUPLICATE_HAMMING_THRESHOLD})"
        )

    if MAX_IMAGE_SIZE <= 0:
        errors.append(f"MAX_IMAGE_SIZE must be positive (got {MAX_IMAGE_SIZE})")

    if errors:
        raise ValueError("Configuration validation failed:\n" + "\n".join(errors))

# Run validation on import
validate_config()
