"""Muzzle print identification pipeline.

The pipeline follows four explicit phases:

1. Validation of the raw capture as a plausible muzzle print.
2. Pre-processing: grayscale conversion, 3x3 smoothing and tiled contrast
   equalization.
3. Extraction of the 28-D feature vector from the processed image and of the
   perceptual fingerprint from the raw image.
4. Ranking against a gallery of enrolled signatures.

The module exposes a CLI that can analyse an image, enroll it into a JSON
gallery file, and match it against that gallery.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from muzzleprint.biodata import create_bio_data_vector
from muzzleprint.config import DEFAULT_GALLERY_PATH, FINGERPRINT_GRID_SIZE, IMAGE_EXTENSIONS, MAX_IMAGE_SIZE
from muzzleprint.extractor import extract_features
from muzzleprint.fingerprint import fingerprint
from muzzleprint.logger import log_biometric, log_error
from muzzleprint.matching import MuzzleMatcher
from muzzleprint.models import EnrolledSignature, GrayscaleBuffer, MuzzlePrintError, PixelBuffer, ValidationResult
from muzzleprint.models_serialization import load_gallery, save_gallery
from muzzleprint.preprocessing import load_image, preprocess
from muzzleprint.validator import MuzzleValidator


# ---------------------------------------------------------------------------
# Pipeline


@dataclass(frozen=True, eq=False)
class MuzzleAnalysis:
	"""Everything the engine derives from one capture.

	Attributes:
		identifier: Identifier given to the capture
		validation: Muzzle validation outcome (computed on the raw image)
		processed: Preprocessed grayscale image
		features: 28-D feature vector
		fingerprint: Perceptual fingerprint of the raw image
	"""
	identifier: str
	validation: ValidationResult
	processed: GrayscaleBuffer
	features: np.ndarray
	fingerprint: np.ndarray

	def to_signature(self, bio_data: Optional[np.ndarray] = None) -> EnrolledSignature:
		return EnrolledSignature(
			identifier=self.identifier,
			features=self.features,
			fingerprint=self.fingerprint,
			bio_data=bio_data,
		)


class MuzzlePipeline:
	def __init__(self, validator: Optional[MuzzleValidator] = None, grid_size: int = FINGERPRINT_GRID_SIZE) -> None:
		self.validator = validator if validator is not None else MuzzleValidator()
		self.grid_size = grid_size

	def process(self, image: PixelBuffer, identifier: str) -> MuzzleAnalysis:
		"""Run validation, preprocessing, feature extraction and fingerprinting on a raw image."""
		validation = self.validator.validate(image)
		processed = preprocess(image)
		features = extract_features(processed)
		bits = fingerprint(image, self.grid_size)

		return MuzzleAnalysis(
			identifier=identifier,
			validation=validation,
			processed=processed,
			features=features,
			fingerprint=bits,
		)

	def process_path(self, image_path: Path, identifier: Optional[str] = None,
					 max_size: Optional[int] = MAX_IMAGE_SIZE) -> MuzzleAnalysis:
		image = load_image(image_path, max_size=max_size)
		return self.process(image, identifier or image_path.stem)


# ---------------------------------------------------------------------------
# Command line interface


def _print_validation(validation: ValidationResult) -> None:
	verdict = "VALID" if validation.is_valid else "NOT VALID"
	print(f"Validation: {verdict} ({validation.confidence * 100:.1f}% confidence) - {validation.message}")
	for name, value in validation.scores.as_dict().items():
		print(f"  {name:18s} {value * 100:6.1f}%")
	flags = validation.flags
	if flags.any:
		raised = [
			name for name, value in (
				("looks_like_face", flags.looks_like_face),
				("looks_like_artificial_object", flags.looks_like_artificial_object),
				("insufficient_detail", flags.insufficient_detail),
			) if value
		]
		print(f"  flags: {', '.join(raised)}")


def _bio_data_from_args(args: argparse.Namespace) -> Optional[np.ndarray]:
	values = (args.breed, args.location, args.age, args.sex, args.color)
	if all(value is None for value in values):
		return None
	if any(value is None for value in values):
		raise SystemExit("Bio-data requires --breed, --location, --age, --sex and --color together.")
	try:
		return create_bio_data_vector(*values)
	except ValueError as exc:
		raise SystemExit(str(exc)) from exc


def _add_bio_arguments(parser: argparse.ArgumentParser) -> None:
	parser.add_argument("--breed", type=str, default=None, help="Breed (bio-data).")
	parser.add_argument("--location", type=str, default=None, help="Location / county (bio-data).")
	parser.add_argument("--age", type=str, default=None, help="Age bracket (bio-data).")
	parser.add_argument("--sex", type=str, default=None, help="Sex (bio-data).")
	parser.add_argument("--color", type=str, default=None, help="Colour / markings (bio-data).")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(description="Cattle muzzle print analysis, enrollment and matching.")
	parser.add_argument(
		"--max-size",
		type=int,
		default=MAX_IMAGE_SIZE,
		help="Downscale images so the longer side is at most this many pixels (default: %(default)s).",
	)
	subparsers = parser.add_subparsers(dest="command", required=True)

	analyze = subparsers.add_parser("analyze", help="Validate an image and print its feature vector.")
	analyze.add_argument("image", type=Path, help="Muzzle image to analyse.")

	enroll = subparsers.add_parser("enroll", help="Enroll an image into the gallery.")
	enroll.add_argument("image", type=Path, help="Muzzle image to enroll.")
	enroll.add_argument("--id", dest="identifier", type=str, required=True, help="Identifier of the animal.")
	enroll.add_argument("--gallery", type=Path, default=DEFAULT_GALLERY_PATH, help="Gallery file (default: %(default)s).")
	enroll.add_argument("--allow-invalid", action="store_true", help="Enroll even if validation fails.")
	enroll.add_argument("--allow-duplicate", action="store_true", help="Enroll even if the photo is already enrolled.")
	_add_bio_arguments(enroll)

	match = subparsers.add_parser("match", help="Rank gallery entries against an image.")
	match.add_argument("image", type=Path, help="Muzzle image to identify.")
	match.add_argument("--gallery", type=Path, default=DEFAULT_GALLERY_PATH, help="Gallery file (default: %(default)s).")
	match.add_argument("--top", type=int, default=5, help="Number of top matches to print (default: %(default)s).")
	_add_bio_arguments(match)

	return parser.parse_args(argv)


def _analyze(pipeline: MuzzlePipeline, args: argparse.Namespace) -> None:
	analysis = pipeline.process_path(args.image, max_size=args.max_size)
	_print_validation(analysis.validation)
	print("Feature vector (28-D):")
	print("  " + " ".join(f"{value:.3f}" for value in analysis.features))
	log_biometric("ANALYZE", analysis.identifier, "SUCCESS", {
		"confidence": f"{analysis.validation.confidence:.3f}",
		"valid": analysis.validation.is_valid,
	})


def _enroll(pipeline: MuzzlePipeline, args: argparse.Namespace) -> None:
	bio_data = _bio_data_from_args(args)
	analysis = pipeline.process_path(args.image, identifier=args.identifier, max_size=args.max_size)
	_print_validation(analysis.validation)

	if not analysis.validation.is_valid and not args.allow_invalid:
		log_biometric("ENROLL", args.identifier, "REJECTED", {"confidence": f"{analysis.validation.confidence:.3f}"})
		raise SystemExit("Image failed muzzle validation. Capture another image or pass --allow-invalid.")

	gallery = load_gallery(args.gallery)
	duplicate = MuzzleMatcher(gallery).find_duplicate(analysis.fingerprint)
	if duplicate is not None and not args.allow_duplicate:
		log_biometric("ENROLL", args.identifier, "DUPLICATE", {"existing": duplicate.identifier})
		raise SystemExit(f"Duplicate detected: this photo is already enrolled as '{duplicate.identifier}'.")

	gallery.append(analysis.to_signature(bio_data))
	save_gallery(gallery, args.gallery)
	log_biometric("ENROLL", args.identifier, "SUCCESS", {"gallery_size": len(gallery)})
	print(f"[info] Enrolled '{args.identifier}' into {args.gallery} ({len(gallery)} signatures).")


def _match(pipeline: MuzzlePipeline, args: argparse.Namespace) -> None:
	if args.top <= 0:
		raise SystemExit("--top must be positive.")
	bio_data = _bio_data_from_args(args)

	gallery = load_gallery(args.gallery)
	analysis = pipeline.process_path(args.image, max_size=args.max_size)
	_print_validation(analysis.validation)
	if not analysis.validation.is_valid:
		print("[warning] Low confidence: image may not be a cow muzzle. Results may be inaccurate.")

	results = MuzzleMatcher(gallery).identify(
		analysis.features,
		query_fingerprint=analysis.fingerprint,
		query_confidence=analysis.validation.confidence,
		query_bio_data=bio_data,
		top_k=args.top,
	)

	if not results:
		log_biometric("MATCH", None, "NO_MATCH", {"gallery_size": 0})
		print("No enrolled signatures to match against.")
		return

	print("Top matches:")
	for rank, result in enumerate(results, start=1):
		duplicate = " [exact duplicate]" if result.is_exact_duplicate else ""
		print(
			f"{rank:2d}. {result.identifier:15s} | {result.match_percentage:5.1f}% "
			f"(raw {result.raw_percentage:5.1f}%) {result.label}{duplicate}"
		)
	top = results[0]
	log_biometric("MATCH", None, "SUCCESS", {
		"top": top.identifier,
		"score": f"{top.match_percentage:.2f}",
		"duplicate": top.is_exact_duplicate,
	})


COMMANDS = {
	"analyze": _analyze,
	"enroll": _enroll,
	"match": _match,
}


def main(argv: Optional[Sequence[str]] = None) -> None:
	args = parse_args(argv)
	if args.max_size is not None and args.max_size <= 0:
		raise SystemExit("--max-size must be positive.")
	if args.image.suffix.lower() not in IMAGE_EXTENSIONS:
		supported = ", ".join(sorted(IMAGE_EXTENSIONS))
		raise SystemExit(f"Unsupported image format '{args.image.suffix}' (supported: {supported}).")

	pipeline = MuzzlePipeline()
	try:
		COMMANDS[args.command](pipeline, args)
	except (FileNotFoundError, ValueError, MuzzlePrintError) as exc:
		log_error(exc, context=args.command)
		raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
	main()
