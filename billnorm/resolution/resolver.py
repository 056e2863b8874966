"""
Field Resolver Module.

This module provides the FieldResolver class that turns the candidate
values collected for a document into one resolved value per field:

    1. Rank candidates by score (stable, so equal scores keep input order)
    2. Boost candidates that agree with each other (consensus)
    3. Re-rank and pick the winner, keeping runners-up as alternatives
    4. Explain the choice and flag suspicious values
    5. Cross-check fields against each other, record contradictions
       and lower the confidence of fields that failed a check

Tie-break rule: both rankings use Python's stable sort on score alone,
so after boosting, candidates with equal scores keep their pre-boost
order (higher original score first, then input order). Resolution is
therefore repeatable for identical input.

Usage:
    from billnorm.resolution import FieldResolver

    resolver = FieldResolver()
    result = resolver.resolve_fields(candidates_by_field)
    print(result.overall_confidence)
"""

import time
from collections import Counter
from dataclasses import dataclass, fields
from typing import Dict, List, Optional

from config import get_section
from billnorm.utils.exceptions import NoCandidatesError
from billnorm.utils.helpers import elapsed_ms
from billnorm.utils.logger import get_logger
from .candidates import FieldCandidate
from .results import FieldValue, ResolutionResult
from .validators import (
    apply_validation_penalties,
    detect_contradictions,
    detect_field_flags,
    run_cross_field_validations
)

# Initialize module logger
logger = get_logger(__name__)

CONSENSUS_STEP = 10
CONSENSUS_MAX_BOOST = 20

# Explanation confidence bands, highest first
CONFIDENCE_BANDS = (
    (95, "Very confident"),
    (85, "Confident"),
    (70, "Moderately confident"),
)


@dataclass
class ResolverConfig:
    """
    Configuration for field resolution.

    Attributes:
        cross_validation_enabled: Run cross-field checks and penalties
        consensus_threshold: Reserved; consensus currently needs exact key equality
        max_alternatives: Runner-up candidates kept per field
        total_tolerance: Allowed |total - (subtotal + tax)|
        large_amount_threshold: Amounts above this are flagged
        low_confidence_threshold: Scores below this are flagged
    """
    cross_validation_enabled: bool = True
    consensus_threshold: float = 0.7
    max_alternatives: int = 3
    total_tolerance: float = 0.02
    large_amount_threshold: float = 1_000_000.0
    low_confidence_threshold: int = 70

    @classmethod
    def from_settings(cls) -> 'ResolverConfig':
        """Build a config from the ``resolution`` section of settings.yaml."""
        known = {f.name for f in fields(cls)}
        overrides = {k: v for k, v in get_section("resolution").items() if k in known}
        return cls(**overrides)


def consensus_boost(count: int) -> int:
    """
    Score boost for a value seen count times.

    Example:
        >>> [consensus_boost(n) for n in (1, 2, 3, 4)]
        [0, 10, 20, 20]
    """
    if count <= 1:
        return 0
    return min((count - 1) * CONSENSUS_STEP, CONSENSUS_MAX_BOOST)


def rank_candidates(candidates: List[FieldCandidate]) -> List[FieldCandidate]:
    """Candidates by score descending; equal scores keep their order."""
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def apply_consensus(candidates: List[FieldCandidate]) -> List[FieldCandidate]:
    """
    Boost candidates whose key is shared with other candidates.

    Returns:
        New list in the same order; boosted entries are copies with a
        Consensus evidence entry, the rest are the original objects.
    """
    counts = Counter(c.key for c in candidates)
    boosted = []

    for candidate in candidates:
        count = counts[candidate.key]
        boost = consensus_boost(count)
        if boost:
            candidate = candidate.with_consensus(boost, count)
        boosted.append(candidate)

    return boosted


def build_explanation(best: FieldCandidate, all_candidates: List[FieldCandidate]) -> str:
    """
    Plain-language reason for choosing best.

    Example:
        "Confident based on OcrConfidence, Consensus (seen 2 times)"
    """
    parts = []

    for threshold, label in CONFIDENCE_BANDS:
        if best.score >= threshold:
            parts.append(label)
            break
    else:
        parts.append("Low confidence")

    evidence_types = []
    for evidence in best.evidence:
        if evidence.evidence_type.value not in evidence_types:
            evidence_types.append(evidence.evidence_type.value)
    if evidence_types:
        parts.append(f"based on {', '.join(evidence_types)}")

    seen = sum(1 for c in all_candidates if c.key == best.key)
    if seen > 1:
        parts.append(f"(seen {seen} times)")

    return " ".join(parts)


class FieldResolver:
    """
    Resolves competing field candidates into final values.

    Attributes:
        config: ResolverConfig in use

    Example:
        >>> resolver = FieldResolver(ResolverConfig())
        >>> value = resolver.resolve_single_field("total", candidates)
        >>> value.confidence
        92
    """

    def __init__(self, config: Optional[ResolverConfig] = None) -> None:
        self.config = config or ResolverConfig.from_settings()
        logger.debug(f"FieldResolver initialized ({self.config})")

    def resolve_fields(
        self,
        candidates_by_field: Dict[str, List[FieldCandidate]]
    ) -> ResolutionResult:
        """
        Resolve every field of a document.

        Fields with an empty candidate list are skipped. The input
        mapping and its candidates are left untouched.

        Args:
            candidates_by_field: Candidate lists keyed by field name.

        Returns:
            ResolutionResult with resolved fields, validations,
            contradictions and overall confidence.
        """
        start = time.perf_counter()

        resolved: Dict[str, FieldValue] = {}
        for field_name, candidates in candidates_by_field.items():
            if not candidates:
                logger.debug(f"Skipping field without candidates: {field_name}")
                continue
            resolved[field_name] = self.resolve_single_field(field_name, candidates)

        validations = []
        if self.config.cross_validation_enabled:
            validations = run_cross_field_validations(resolved, self.config.total_tolerance)

        # Flag contradictions (future dates, invalid amounts) do not depend on validations
        contradictions = detect_contradictions(resolved, validations)
        apply_validation_penalties(resolved, validations)

        overall = (
            sum(value.confidence for value in resolved.values()) // len(resolved)
            if resolved else 0
        )

        result = ResolutionResult(
            fields=resolved,
            cross_field_validations=validations,
            contradictions=contradictions,
            overall_confidence=overall,
            processing_time_ms=elapsed_ms(start),
        )

        logger.info(
            f"Resolved {len(resolved)} fields: overall confidence {overall}, "
            f"{len(result.failed_validations)} failed validations, "
            f"{len(contradictions)} contradictions"
        )
        return result

    def resolve_single_field(
        self,
        field_name: str,
        candidates: List[FieldCandidate]
    ) -> FieldValue:
        """
        Pick the best candidate for one field.

        Args:
            field_name: Field being resolved.
            candidates: Candidate values, in extraction order.

        Returns:
            FieldValue before any cross-field penalty.

        Raises:
            NoCandidatesError: If candidates is empty.
        """
        if not candidates:
            raise NoCandidatesError(field_name)

        ranked = rank_candidates(candidates)
        ranked = rank_candidates(apply_consensus(ranked))

        best = ranked[0]
        alternatives = ranked[1:1 + self.config.max_alternatives]

        value = FieldValue(
            field_name=field_name,
            value=best.value_raw,
            normalized=best.value_normalized,
            confidence=best.score,
            chosen_sources=list(best.sources),
            alternatives=alternatives,
            flags=detect_field_flags(
                field_name,
                best,
                self.config.low_confidence_threshold,
                self.config.large_amount_threshold,
            ),
            explanation=build_explanation(best, ranked),
        )

        logger.debug(
            f"{field_name}: chose '{best.value_raw}' ({best.score}) "
            f"from {len(candidates)} candidates"
        )
        return value
