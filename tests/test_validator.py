import dataclasses

import numpy as np
import pytest

from muzzleprint.config import DEFAULT_VALIDATOR_CONFIG, ValidatorConfig
from muzzleprint.models import PixelBuffer, RejectionFlags
from muzzleprint.validator import MuzzleValidator, _count_long_runs, validate, validation_message


@pytest.fixture
def validator():
    return MuzzleValidator()


@pytest.fixture
def face_gray():
    """Light 90x90 canvas with two eye blobs and a dark mouth band."""
    gray = np.full((90, 90), 180.0)
    gray[10:15, 20:25] = 10.0
    gray[10:15, 60:65] = 10.0
    gray[70:74, 10:80] = 10.0
    return gray


def test_uniform_gray_is_rejected(uniform_gray):
    result = validate(uniform_gray)

    assert result.scores.texture == 0.0
    assert result.scores.edge_density == 0.0
    assert result.scores.contrast == 0.0
    assert result.flags.insufficient_detail
    assert not result.is_valid
    assert result.level == "error"


@pytest.mark.tuning_sensitive
def test_uniform_gray_scores_follow_weights(uniform_gray):
    result = validate(uniform_gray)

    # Only symmetry, aspect ratio and colour contribute: 0.15 + 0.05 + 0.08
    assert result.raw_score == pytest.approx(0.28, abs=1e-6)
    assert result.flags.looks_like_artificial_object
    assert result.confidence == pytest.approx(0.28 * 0.4 * 0.5, abs=1e-6)
    assert result.message == "Warning: Image does not appear to be a muzzle print"


def test_scores_stay_in_unit_range(validator, ridge_image, noise_image):
    for image in (ridge_image, noise_image):
        result = validator.validate(image)
        for value in result.scores.as_dict().values():
            assert 0.0 <= value <= 1.0
        assert 0.0 <= result.confidence <= result.raw_score <= 1.0


def test_textured_image_scores_higher_than_flat(validator, ridge_image, uniform_gray):
    textured = validator.scores(ridge_image)
    flat = validator.scores(uniform_gray)
    assert textured.texture > flat.texture
    assert textured.contrast > flat.contrast


def test_noise_raises_no_flags(validator, noise_image):
    assert not validator.flags(noise_image.luminance()).any


def test_face_layout_is_detected(validator, face_gray):
    assert validator.looks_like_face(face_gray)


def test_face_needs_mouth_band(validator, face_gray):
    face_gray[70:74, :] = 180.0
    assert not validator.looks_like_face(face_gray)


def test_face_needs_two_eye_blobs(validator, face_gray):
    face_gray[10:15, 60:65] = 180.0
    assert not validator.looks_like_face(face_gray)


def test_count_long_runs_includes_both_ends():
    similar = np.zeros((2, 60), dtype=bool)
    similar[0, 5:44] = True  # 39 similar pairs join 40 pixels
    similar[1, 5:43] = True  # 38 pairs join 39 pixels
    assert _count_long_runs(similar, 40) == 1


def test_aspect_ratio_score(validator):
    assert validator.aspect_ratio_score(100, 100) == 1.0
    assert validator.aspect_ratio_score(200, 100) == pytest.approx(1.0 - 0.5 / 1.5)
    assert validator.aspect_ratio_score(50, 100) == pytest.approx(0.5 / 0.7)


def test_neon_colours_are_unnatural(validator):
    neon = PixelBuffer.from_array(np.tile(np.array([255, 0, 0], dtype=np.uint8), (20, 20, 1)))
    assert validator.color_naturalness_score(neon) == 0.0


def test_penalties_multiply(validator, uniform_gray):
    scores = validator.scores(uniform_gray)
    flags = RejectionFlags(looks_like_face=True, looks_like_artificial_object=True, insufficient_detail=True)
    raw, adjusted = validator.combine(scores, flags)
    assert adjusted == pytest.approx(raw * 0.3 * 0.4 * 0.5)


@pytest.mark.parametrize("score, message", [
    (0.9, "Excellent muzzle print quality"),
    (0.75, "Excellent muzzle print quality"),
    (0.6, "Good muzzle print detected"),
    (0.5, "Acceptable muzzle print"),
    (0.3, "Low confidence - may not be a muzzle"),
    (0.29, "Warning: Image does not appear to be a muzzle print"),
])
def test_validation_message_buckets(score, message):
    assert validation_message(score) == message


def test_custom_config_is_used(noise_image):
    lenient = ValidatorConfig(acceptance_threshold=0.01)
    strict = ValidatorConfig(acceptance_threshold=1.0)
    assert validate(noise_image, lenient).is_valid
    assert not validate(noise_image, strict).is_valid


@pytest.mark.parametrize("kwargs", [
    {"weight_texture": 0.5},
    {"lbp_low": 230},
    {"face_penalty": 0.0},
    {"radial_rings": 1},
])
def test_validator_config_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        ValidatorConfig(**kwargs)


def test_default_validator_config_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_VALIDATOR_CONFIG.acceptance_threshold = 0.0
