import cv2
import numpy as np
import pytest

from muzzleprint.config import ValidatorConfig
from muzzleprint.models_serialization import load_gallery
from muzzleprint.pipeline import MuzzlePipeline, main
from muzzleprint.validator import MuzzleValidator


@pytest.fixture
def muzzle_png(tmp_path, ridge_pixels):
    path = tmp_path / "muzzle.png"
    cv2.imwrite(str(path), ridge_pixels)
    return path


@pytest.fixture
def flat_png(tmp_path):
    path = tmp_path / "flat.png"
    cv2.imwrite(str(path), np.full((128, 128), 128, dtype=np.uint8))
    return path


def test_process_produces_signature(ridge_image):
    analysis = MuzzlePipeline().process(ridge_image, "cow-7")

    assert analysis.features.shape == (28,)
    assert analysis.fingerprint.shape == (4096,)
    assert analysis.processed.shape == ridge_image.shape

    signature = analysis.to_signature()
    assert signature.identifier == "cow-7"
    assert signature.bio_data is None


def test_process_uses_injected_validator(ridge_image):
    validator = MuzzleValidator(ValidatorConfig(acceptance_threshold=1.0))
    analysis = MuzzlePipeline(validator=validator).process(ridge_image, "cow-7")
    assert not analysis.validation.is_valid


def test_process_path_defaults_identifier_to_stem(muzzle_png):
    analysis = MuzzlePipeline().process_path(muzzle_png)
    assert analysis.identifier == "muzzle"


def test_cli_enroll_then_match(tmp_path, muzzle_png, capsys, log_dir):
    gallery = tmp_path / "gallery.json"

    main([
        "enroll", str(muzzle_png), "--id", "KE-0042", "--gallery", str(gallery), "--allow-invalid",
        "--breed", "Boran", "--location", "Narok", "--age", "3 years",
        "--sex", "Female (Cow)", "--color", "Brindle",
    ])
    enrolled = load_gallery(gallery)
    assert [entry.identifier for entry in enrolled] == ["KE-0042"]
    assert enrolled[0].bio_data is not None

    main(["match", str(muzzle_png), "--gallery", str(gallery), "--top", "3"])
    out = capsys.readouterr().out
    assert "Top matches:" in out
    assert "KE-0042" in out
    assert "99.9%" in out
    assert "[exact duplicate]" in out

    assert "ENROLL SUCCESS" in (log_dir / "biometric.log").read_text(encoding="utf-8")


def test_cli_rejects_duplicate_enrollment(tmp_path, muzzle_png):
    gallery = tmp_path / "gallery.json"
    main(["enroll", str(muzzle_png), "--id", "first", "--gallery", str(gallery), "--allow-invalid"])

    with pytest.raises(SystemExit, match="Duplicate detected"):
        main(["enroll", str(muzzle_png), "--id", "second", "--gallery", str(gallery), "--allow-invalid"])

    main([
        "enroll", str(muzzle_png), "--id", "second", "--gallery", str(gallery),
        "--allow-invalid", "--allow-duplicate",
    ])
    assert len(load_gallery(gallery)) == 2


def test_cli_rejects_invalid_image(tmp_path, flat_png):
    gallery = tmp_path / "gallery.json"
    with pytest.raises(SystemExit, match="failed muzzle validation"):
        main(["enroll", str(flat_png), "--id", "flat", "--gallery", str(gallery)])
    assert not gallery.exists()


def test_cli_requires_complete_bio_data(tmp_path, muzzle_png):
    with pytest.raises(SystemExit, match="Bio-data requires"):
        main([
            "enroll", str(muzzle_png), "--id", "x", "--gallery", str(tmp_path / "g.json"),
            "--breed", "Boran",
        ])


def test_cli_match_empty_gallery(tmp_path, muzzle_png, capsys):
    main(["match", str(muzzle_png), "--gallery", str(tmp_path / "none.json")])
    assert "No enrolled signatures" in capsys.readouterr().out


def test_cli_analyze_prints_features(muzzle_png, capsys):
    main(["analyze", str(muzzle_png)])
    out = capsys.readouterr().out
    assert "Validation:" in out
    assert "Feature vector (28-D):" in out


def test_cli_missing_image(tmp_path):
    with pytest.raises(SystemExit, match="Unable to read"):
        main(["analyze", str(tmp_path / "missing.png")])


def test_cli_corrupt_gallery(tmp_path, muzzle_png):
    gallery = tmp_path / "gallery.json"
    gallery.write_text("{not json", encoding="utf-8")
    with pytest.raises(SystemExit):
        main(["match", str(muzzle_png), "--gallery", str(gallery)])


def test_cli_rejects_unsupported_image_format(tmp_path):
    path = tmp_path / "muzzle.gif"
    path.write_bytes(b"GIF89a")
    with pytest.raises(SystemExit, match="Unsupported image format"):
        main(["analyze", str(path)])
