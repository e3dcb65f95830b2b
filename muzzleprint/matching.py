"""Matching module for MuzzlePrint

This module contains:
- cosine_similarity / inverse_euclidean_similarity / similarity: feature vector scores
- MuzzleMatcher: 1:N identification against enrolled signatures, with duplicate
  override, bio-data fusion and confidence boost
- match: functional entry point over a reference collection

"""

from __future__ import annotations
from typing import Iterable, List, Optional, Sequence, Tuple
import numpy as np

from muzzleprint.logger import get_logger
from muzzleprint.biodata import bio_data_similarity
from muzzleprint.fingerprint import hamming_distance, fingerprint_similarity
from muzzleprint.models import EnrolledSignature, MatchResult, VectorLengthMismatch, ZeroNormVector
from muzzleprint.config import MatchingConfig, DEFAULT_MATCHING_CONFIG

logger = get_logger("matching")


# ---------------------------------------------------------------------------
# Vector similarity


def _comparable_vectors(a: Sequence[float], b: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    """Coerce two vectors to float64 arrays of equal length.

    Raises:
        VectorLengthMismatch: If the lengths differ
    """
    vec_a = np.asarray(a, dtype=np.float64).reshape(-1)
    vec_b = np.asarray(b, dtype=np.float64).reshape(-1)
    if vec_a.shape != vec_b.shape:
        raise VectorLengthMismatch(f"Vector length mismatch: {vec_a.shape[0]} vs {vec_b.shape[0]}")
    return vec_a, vec_b


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity scaled to [0, 100].

    Returns 0.0 when the lengths differ or either vector has zero norm.
    """
    try:
        vec_a, vec_b = _comparable_vectors(a, b)
        norm = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
        if norm == 0.0:
            raise ZeroNormVector("Cannot compare a zero-norm vector")
    except (VectorLengthMismatch, ZeroNormVector) as exc:
        logger.debug("Cosine similarity is 0: %s", exc)
        return 0.0

    cosine = float(np.dot(vec_a, vec_b) / norm)
    return float(np.clip(cosine * 100.0, 0.0, 100.0))


def inverse_euclidean_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """100 / (1 + ||a - b||); 0.0 when the lengths differ."""
    try:
        vec_a, vec_b = _comparable_vectors(a, b)
    except VectorLengthMismatch as exc:
        logger.debug("Euclidean similarity is 0: %s", exc)
        return 0.0
    return 100.0 / (1.0 + float(np.linalg.norm(vec_a - vec_b)))


def similarity(a: Sequence[float], b: Sequence[float], config: Optional[MatchingConfig] = None) -> float:
    """Blended raw similarity in [0, 100]: cosine_weight * cosine + euclidean_weight * inverse-Euclidean.

    Returns 0.0 when the lengths differ or either vector has zero norm.
    """
    if config is None:
        config = DEFAULT_MATCHING_CONFIG

    try:
        vec_a, vec_b = _comparable_vectors(a, b)
    except VectorLengthMismatch as exc:
        logger.debug("Similarity is 0: %s", exc)
        return 0.0

    # Zero vectors get no Euclidean credit either
    if not vec_a.any() or not vec_b.any():
        return 0.0

    blended = (
        config.cosine_weight * cosine_similarity(vec_a, vec_b)
        + config.euclidean_weight * inverse_euclidean_similarity(vec_a, vec_b)
    )
    return float(np.clip(blended, 0.0, 100.0))


# ---------------------------------------------------------------------------
# MuzzleMatcher Class


class MuzzleMatcher:
    """1:N muzzle matcher over a gallery of enrolled signatures.

    Every candidate is scored independently, in this precedence:
    1. Exact duplicate (fingerprints within the duplicate threshold): forced score
    2. Bio-data fusion when query and candidate both carry bio-data vectors
    3. Confidence boost when the query validation confidence is high
    4. Raw feature similarity

    Attributes:
        templates: Gallery of enrolled signatures, in enrollment order
        config: Blend weights and thresholds
    """

    def __init__(self, templates: Iterable[EnrolledSignature], config: Optional[MatchingConfig] = None) -> None:
        self.templates = list(templates)
        self.config = config if config is not None else DEFAULT_MATCHING_CONFIG

    def _duplicate_check(self,
                         query_fingerprint: Optional[np.ndarray],
                         candidate: EnrolledSignature) -> Tuple[bool, float]:
        """Return (is_exact_duplicate, fingerprint similarity %) for one candidate."""
        if query_fingerprint is None or candidate.fingerprint is None:
            return False, 0.0

        try:
            distance = hamming_distance(query_fingerprint, candidate.fingerprint)
        except VectorLengthMismatch as exc:
            logger.debug("Skipping duplicate check for %s: %s", candidate.identifier, exc)
            return False, 0.0

        return distance <= self.config.duplicate_threshold, fingerprint_similarity(
            query_fingerprint, candidate.fingerprint
        )

    def score(self,
              query_features: Sequence[float],
              candidate: EnrolledSignature,
              query_fingerprint: Optional[np.ndarray] = None,
              query_confidence: Optional[float] = None,
              query_bio_data: Optional[Sequence[float]] = None) -> MatchResult:
        """Score a single enrolled signature against the query."""
        raw = similarity(query_features, candidate.features, self.config)
        is_duplicate, duplicate_score = self._duplicate_check(query_fingerprint, candidate)

        bio_score = None
        if is_duplicate:
            combined = self.config.duplicate_score
        elif (
            query_bio_data is not None
            and candidate.bio_data is not None
            and len(query_bio_data) == len(candidate.bio_data)
        ):
            bio_score = bio_data_similarity(query_bio_data, candidate.bio_data)
            combined = self.config.feature_weight * raw + self.config.bio_weight * bio_score
        elif query_confidence is not None and query_confidence >= self.config.high_confidence_threshold:
            combined = raw * self.config.confidence_boost
        else:
            combined = raw

        return MatchResult(
            identifier=candidate.identifier,
            match_percentage=float(np.clip(combined, 0.0, 100.0)),
            raw_percentage=raw,
            is_exact_duplicate=is_duplicate,
            duplicate_score=duplicate_score,
            bio_match_percentage=bio_score,
        )

    def identify(self,
                 query_features: Sequence[float],
                 query_fingerprint: Optional[np.ndarray] = None,
                 query_confidence: Optional[float] = None,
                 query_bio_data: Optional[Sequence[float]] = None,
                 top_k: Optional[int] = None) -> List[MatchResult]:
        """Rank every enrolled signature against the query.

        Args:
            query_features: 28-D query feature vector
            query_fingerprint: Optional query perceptual fingerprint
            query_confidence: Optional validator confidence of the query image
            query_bio_data: Optional query bio-data vector
            top_k: Number of results to keep (None keeps all)

        Returns:
            MatchResult list sorted by match_percentage (descending), ties in
            enrollment order. Empty when the gallery is empty.

        Raises:
            ValueError: If top_k is negative
        """
        if top_k is not None and top_k < 0:
            raise ValueError(f"top_k must be non-negative, got {top_k}")

        results = [
            self.score(query_features, candidate, query_fingerprint, query_confidence, query_bio_data)
            for candidate in self.templates
        ]

        # list.sort is stable, so ties keep enrollment order
        results.sort(key=lambda result: result.match_percentage, reverse=True)

        if results:
            logger.debug(
                "Ranked %d candidates, top=%s (%.2f%%)",
                len(results), results[0].identifier, results[0].match_percentage,
            )

        if top_k is not None:
            return results[:top_k]
        return results

    def find_duplicate(self, query_fingerprint: np.ndarray) -> Optional[EnrolledSignature]:
        """First enrolled signature whose fingerprint marks the same photograph, if any."""
        for candidate in self.templates:
            is_duplicate, _ = self._duplicate_check(query_fingerprint, candidate)
            if is_duplicate:
                return candidate
        return None


def match(query_features: Sequence[float],
          query_fingerprint: Optional[np.ndarray] = None,
          query_confidence: Optional[float] = None,
          reference_set: Iterable[EnrolledSignature] = (),
          query_bio_data: Optional[Sequence[float]] = None,
          config: Optional[MatchingConfig] = None) -> List[MatchResult]:
    """Rank a reference collection against a query signature.

    An empty reference collection yields an empty list.
    """
    matcher = MuzzleMatcher(reference_set, config)
    return matcher.identify(
        query_features,
        query_fingerprint=query_fingerprint,
        query_confidence=query_confidence,
        query_bio_data=query_bio_data,
    )
