"""
Field Candidate Data Classes.

A candidate is one proposed value for a bill field, produced by an
external extraction step together with the evidence that supports it.
The resolver only reads candidates; every change it makes (consensus
boosts) is applied to copies.

Classes:
    EvidenceType: Closed set of evidence kinds
    Evidence: One piece of supporting evidence
    FieldCandidate: A proposed value for a field
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from billnorm.imaging.geometry import BoundingBox


class EvidenceType(str, Enum):
    """Kinds of evidence that can back a candidate."""
    OCR_CONFIDENCE = "OcrConfidence"
    PATTERN_MATCH = "PatternMatch"
    LABEL_PROXIMITY = "LabelProximity"
    ZONE_PRIOR = "ZonePrior"
    VENDOR_RULE = "VendorRule"
    CONSENSUS = "Consensus"


@dataclass(frozen=True)
class Evidence:
    """
    Supporting evidence for a candidate value.

    Attributes:
        evidence_type: Kind of evidence
        description: Human-readable detail
        artifact_id: Artifact the evidence came from (if any)
        weight: Relative strength of the evidence
    """
    evidence_type: EvidenceType
    description: str
    artifact_id: Optional[str] = None
    weight: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'evidence_type': self.evidence_type.value,
            'description': self.description,
            'artifact_id': self.artifact_id,
            'weight': self.weight,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Evidence':
        return cls(
            evidence_type=EvidenceType(data['evidence_type']),
            description=data.get('description', ''),
            artifact_id=data.get('artifact_id'),
            weight=float(data.get('weight', 1.0)),
        )


@dataclass(frozen=True)
class FieldCandidate:
    """
    One proposed value for a bill field.

    Attributes:
        field_name: Target field (e.g. "invoice_number", "total")
        value_raw: Value as read from the page
        value_normalized: Canonical form (YYYY-MM-DD dates, "1234.56" amounts)
        score: Extraction score (0-100)
        evidence: Evidence backing the value
        sources: Artifact ids the value was read from
        bbox: Pixel location on the page (if known)

    Example:
        >>> candidate = FieldCandidate("total", "$110.00", "110.00", 92)
        >>> candidate.key
        '110.00'
    """
    field_name: str
    value_raw: str
    value_normalized: Optional[str] = None
    score: int = 0
    evidence: List[Evidence] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    bbox: Optional[BoundingBox] = None

    @property
    def key(self) -> str:
        """Value used to group agreeing candidates."""
        return self.value_normalized if self.value_normalized is not None else self.value_raw

    def with_consensus(self, boost: int, count: int) -> 'FieldCandidate':
        """Copy with score raised by boost (capped at 100) and a Consensus evidence entry."""
        consensus = Evidence(
            evidence_type=EvidenceType.CONSENSUS,
            description=f"Value seen {count} times across sources",
            weight=0.2 * count,
        )
        return replace(
            self,
            score=min(self.score + boost, 100),
            evidence=list(self.evidence) + [consensus],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field_name': self.field_name,
            'value_raw': self.value_raw,
            'value_normalized': self.value_normalized,
            'score': self.score,
            'evidence': [e.to_dict() for e in self.evidence],
            'sources': list(self.sources),
            'bbox': self.bbox.to_dict() if self.bbox else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], field_name: Optional[str] = None) -> 'FieldCandidate':
        """
        Build a candidate from a JSON-style dictionary.

        Args:
            data: Candidate dictionary as produced by to_dict().
            field_name: Field name to use when data does not carry one.

        Raises:
            KeyError: If value_raw is missing.
            ValueError: If the score is outside 0-100 or an evidence type is unknown.
        """
        score = int(data.get('score', 0))
        if not 0 <= score <= 100:
            raise ValueError(f"Candidate score out of range: {score}")

        bbox_data = data.get('bbox')
        bbox = None
        if bbox_data:
            bbox = BoundingBox(
                int(bbox_data['x']), int(bbox_data['y']),
                int(bbox_data['width']), int(bbox_data['height'])
            )

        return cls(
            field_name=data.get('field_name', field_name or ''),
            value_raw=str(data['value_raw']),
            value_normalized=data.get('value_normalized'),
            score=score,
            evidence=[Evidence.from_dict(e) for e in data.get('evidence', [])],
            sources=list(data.get('sources', [])),
            bbox=bbox,
        )


def load_candidates(data: Dict[str, List[Dict[str, Any]]]) -> Dict[str, List[FieldCandidate]]:
    """Build a candidate map from {field_name: [candidate dict, ...]}."""
    return {
        name: [FieldCandidate.from_dict(item, field_name=name) for item in items]
        for name, items in data.items()
    }
