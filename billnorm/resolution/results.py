"""
Resolution Result Data Classes.

Classes:
    FieldValue: Resolved value of one field
    ValidationType: Closed set of cross-field checks
    CrossFieldValidation: Outcome of one check
    ContradictionSeverity: Critical or Warning
    Contradiction: A data-quality conflict for review
    ResolutionResult: Everything resolved for one document
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .candidates import FieldCandidate


@dataclass
class FieldValue:
    """
    Resolved value of a single field.

    Attributes:
        field_name: Field the value belongs to
        value: Winning raw value
        normalized: Winning normalized value (if any)
        confidence: Confidence after consensus and penalties (0-100)
        chosen_sources: Artifact ids of the winning candidate
        alternatives: Runner-up candidates, best first
        flags: Data-quality flags (e.g. "low_confidence")
        explanation: Plain-language reason for the choice
    """
    field_name: str
    value: str
    normalized: Optional[str]
    confidence: int
    chosen_sources: List[str] = field(default_factory=list)
    alternatives: List[FieldCandidate] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)
    explanation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field_name': self.field_name,
            'value': self.value,
            'normalized': self.normalized,
            'confidence': self.confidence,
            'chosen_sources': list(self.chosen_sources),
            'alternatives': [c.to_dict() for c in self.alternatives],
            'flags': list(self.flags),
            'explanation': self.explanation,
        }


class ValidationType(str, Enum):
    TOTAL_EQUALS_SUBTOTAL_PLUS_TAX = "TotalEqualsSubtotalPlusTax"
    DATE_NOT_IN_FUTURE = "DateNotInFuture"
    INVOICE_NUMBER_FORMAT = "InvoiceNumberFormat"
    VENDOR_NAME_PRESENT = "VendorNamePresent"


@dataclass(frozen=True)
class CrossFieldValidation:
    """Outcome of one cross-field check; penalty is 0 when it passed."""
    validation_type: ValidationType
    passed: bool
    message: str
    penalty: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'validation_type': self.validation_type.value,
            'passed': self.passed,
            'message': self.message,
            'penalty': self.penalty,
        }


class ContradictionSeverity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"


@dataclass(frozen=True)
class Contradiction:
    fields: List[str]
    description: str
    severity: ContradictionSeverity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fields': list(self.fields),
            'description': self.description,
            'severity': self.severity.value,
        }


@dataclass
class ResolutionResult:
    """
    Resolution output for one document.

    Attributes:
        fields: Resolved values keyed by field name, in input order
        cross_field_validations: All four checks, always in the same order
        contradictions: Conflicts a reviewer should look at
        overall_confidence: Floor of the mean field confidence (0 if no fields)
        processing_time_ms: Wall-clock resolution time
    """
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    cross_field_validations: List[CrossFieldValidation] = field(default_factory=list)
    contradictions: List[Contradiction] = field(default_factory=list)
    overall_confidence: int = 0
    processing_time_ms: int = 0

    @property
    def failed_validations(self) -> List[CrossFieldValidation]:
        return [v for v in self.cross_field_validations if not v.passed]

    @property
    def has_critical_contradictions(self) -> bool:
        return any(c.severity is ContradictionSeverity.CRITICAL for c in self.contradictions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fields': {name: value.to_dict() for name, value in self.fields.items()},
            'cross_field_validations': [v.to_dict() for v in self.cross_field_validations],
            'contradictions': [c.to_dict() for c in self.contradictions],
            'overall_confidence': self.overall_confidence,
            'processing_time_ms': self.processing_time_ms,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
