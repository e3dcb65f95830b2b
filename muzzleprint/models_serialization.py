"""Serialization for EnrolledSignature records

This module provides functions to serialize/deserialize enrolled muzzle
signatures as plain dictionaries and JSON, and to read/write a gallery file
(a JSON list of signatures) used by the command line interface.

Fingerprints are stored as hex-packed bits together with their bit length.
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, Any, List, Sequence
import json
import numpy as np

from muzzleprint.models import EnrolledSignature
from muzzleprint.fingerprint import pack_fingerprint, unpack_fingerprint
from muzzleprint.config import FEATURE_VECTOR_DIM
from muzzleprint.biodata import BIO_DATA_DIM
from muzzleprint.logger import get_logger

logger = get_logger("serialization")


def signature_to_dict(signature: EnrolledSignature) -> Dict[str, Any]:
    """Serialize a signature to a JSON-compatible dictionary.

    Args:
        signature: EnrolledSignature object

    Returns:
        Dictionary with identifier, features, optional fingerprint and bio-data
    """
    data: Dict[str, Any] = {
        'identifier': signature.identifier,
        'features': [float(v) for v in np.asarray(signature.features).reshape(-1)],
    }

    if signature.fingerprint is not None:
        bits = np.asarray(signature.fingerprint, dtype=bool).reshape(-1)
        data['fingerprint'] = pack_fingerprint(bits)
        data['fingerprint_bits'] = int(bits.size)

    if signature.bio_data is not None:
        data['bio_data'] = [float(v) for v in np.asarray(signature.bio_data).reshape(-1)]

    return data


def signature_from_dict(data: Dict[str, Any]) -> EnrolledSignature:
    """Deserialize a signature from a dictionary.

    Feature vectors of legacy length are kept as-is; the matcher scores them 0.
    Bio-data of the wrong length is dropped.

    Args:
        data: Dictionary produced by signature_to_dict

    Returns:
        EnrolledSignature object

    Raises:
        KeyError: If identifier or features are missing
    """
    features = np.asarray(data['features'], dtype=np.float64).reshape(-1)
    if features.shape[0] != FEATURE_VECTOR_DIM:
        logger.warning(
            "Signature %s has %d features (expected %d); it will never match",
            data['identifier'], features.shape[0], FEATURE_VECTOR_DIM,
        )

    fingerprint = None
    if data.get('fingerprint'):
        fingerprint = unpack_fingerprint(data['fingerprint'], int(data['fingerprint_bits']))

    bio_data = None
    if data.get('bio_data') is not None:
        bio_data = np.asarray(data['bio_data'], dtype=np.float64).reshape(-1)
        if bio_data.shape[0] != BIO_DATA_DIM:
            logger.warning(
                "Signature %s has %d bio-data values (expected %d); bio-data ignored",
                data['identifier'], bio_data.shape[0], BIO_DATA_DIM,
            )
            bio_data = None

    return EnrolledSignature(
        identifier=str(data['identifier']),
        features=features,
        fingerprint=fingerprint,
        bio_data=bio_data,
    )


def signature_to_json(signature: EnrolledSignature) -> str:
    """Serialize signature to JSON string."""
    return json.dumps(signature_to_dict(signature), indent=2)


def signature_from_json(json_str: str) -> EnrolledSignature:
    """Deserialize signature from JSON string."""
    return signature_from_dict(json.loads(json_str))


def save_gallery(signatures: Sequence[EnrolledSignature], path: Path) -> Path:
    """Write signatures to a JSON gallery file, preserving enrollment order."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [signature_to_dict(signature) for signature in signatures]
    path.write_text(json.dumps(payload, indent=2), encoding='utf-8')
    return path


def load_gallery(path: Path) -> List[EnrolledSignature]:
    """Load signatures from a JSON gallery file.

    A missing file is an empty gallery. Malformed records are skipped with a warning.

    Raises:
        ValueError: If the file is not a JSON list
    """
    if not path.exists():
        return []

    payload = json.loads(path.read_text(encoding='utf-8'))
    if not isinstance(payload, list):
        raise ValueError(f"Gallery file {path} must contain a JSON list")

    signatures: List[EnrolledSignature] = []
    for index, record in enumerate(payload):
        try:
            signatures.append(signature_from_dict(record))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping gallery record %d in %s: %s", index, path.name, exc)
    return signatures
