"""
MuzzlePrint - Cattle Muzzle Print Biometric Engine
Validation, feature extraction, perceptual fingerprinting and 1:N matching of muzzle images.
"""

from .models import (
    PixelBuffer, GrayscaleBuffer, ValidationScores, RejectionFlags, ValidationResult,
    EnrolledSignature, MatchResult, match_label,
    MuzzlePrintError, InvalidImageDimensions, VectorLengthMismatch, ZeroNormVector,
)
from .preprocessing import preprocess, load_image
from .validator import MuzzleValidator, validate
from .extractor import extract_features
from .fingerprint import fingerprint, hamming_distance, is_same_photo
from .matching import MuzzleMatcher, match, similarity
from .biodata import create_bio_data_vector, bio_data_similarity
from .pipeline import MuzzlePipeline, MuzzleAnalysis

__version__ = "1.0.0"
__all__ = [
    'preprocess', 'load_image', 'validate', 'extract_features', 'fingerprint', 'match',
    'hamming_distance', 'is_same_photo', 'similarity', 'match_label',
    'create_bio_data_vector', 'bio_data_similarity',
    'MuzzleValidator', 'MuzzleMatcher', 'MuzzlePipeline', 'MuzzleAnalysis',
    'PixelBuffer', 'GrayscaleBuffer', 'ValidationScores', 'RejectionFlags', 'ValidationResult',
    'EnrolledSignature', 'MatchResult',
    'MuzzlePrintError', 'InvalidImageDimensions', 'VectorLengthMismatch', 'ZeroNormVector',
]
