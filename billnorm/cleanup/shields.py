"""
Cleanup Shield Data Classes.

A shield marks a page region that field-candidate extraction should
ignore, such as a letterhead repeated on every page. Shields are
immutable: a re-scored shield is a new value, and rule changes replace
whole shield lists rather than editing them.

Classes:
    ShieldType, ApplyMode, RiskLevel, ShieldSource, PageTargetKind: closed enums
    PageTarget: Which pages a shield applies to
    ShieldProvenance: Who or what created a shield
    CleanupShield: The shield itself
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple

from billnorm.imaging.geometry import NormalizedBBox

# Confidence below which an auto-detected shield should not be applied
AUTO_DETECTED_MIN_CONFIDENCE = 0.6


class ShieldType(str, Enum):
    """Kinds of page region a shield can cover."""
    LOGO = "Logo"
    WATERMARK = "Watermark"
    REPETITIVE_HEADER = "RepetitiveHeader"
    REPETITIVE_FOOTER = "RepetitiveFooter"
    STAMP = "Stamp"
    USER_DEFINED = "UserDefined"
    VENDOR_SPECIFIC = "VendorSpecific"
    TEMPLATE_SPECIFIC = "TemplateSpecific"


class ApplyMode(str, Enum):
    APPLIED = "Applied"
    SUGGESTED = "Suggested"
    DISABLED = "Disabled"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ShieldSource(IntEnum):
    """Where a shield came from; higher values take precedence."""
    AUTO_DETECTED = 0
    VENDOR_RULE = 1
    TEMPLATE_RULE = 2
    SESSION_OVERRIDE = 3


class PageTargetKind(str, Enum):
    ALL = "All"
    FIRST = "First"
    LAST = "Last"
    SPECIFIC = "Specific"


@dataclass(frozen=True)
class PageTarget:
    """
    Pages a shield applies to.

    Example:
        >>> PageTarget.specific([1, 3]).applies_to(3, total_pages=4)
        True
    """
    kind: PageTargetKind = PageTargetKind.ALL
    pages: Tuple[int, ...] = ()

    @classmethod
    def all(cls) -> 'PageTarget':
        return cls(PageTargetKind.ALL)

    @classmethod
    def first(cls) -> 'PageTarget':
        return cls(PageTargetKind.FIRST)

    @classmethod
    def last(cls) -> 'PageTarget':
        return cls(PageTargetKind.LAST)

    @classmethod
    def specific(cls, pages) -> 'PageTarget':
        return cls(PageTargetKind.SPECIFIC, tuple(pages))

    def applies_to(self, page_number: int, total_pages: int) -> bool:
        """Check whether a 1-based page number is covered."""
        if self.kind is PageTargetKind.ALL:
            return True
        if self.kind is PageTargetKind.FIRST:
            return page_number == 1
        if self.kind is PageTargetKind.LAST:
            return page_number == total_pages
        return page_number in self.pages

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind.value, 'pages': list(self.pages)}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ShieldProvenance:
    """Creation record for a shield."""
    source: ShieldSource = ShieldSource.AUTO_DETECTED
    user_id: Optional[str] = None
    vendor_id: Optional[str] = None
    template_id: Optional[str] = None
    created_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source.name,
            'user_id': self.user_id,
            'vendor_id': self.vendor_id,
            'template_id': self.template_id,
            'created_at': self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class CleanupShield:
    """
    An exclusion region for field-candidate extraction.

    Attributes:
        id: Unique shield identifier
        shield_type: What kind of region this is
        normalized_bbox: Region in page-relative coordinates
        page_target: Pages the shield applies to
        apply_mode: Whether the shield is applied, suggested or disabled
        risk_level: Chance that applying it hides real bill data
        confidence: Detection confidence (0-1)
        min_confidence: Confidence required before it may be applied
        why_detected: Human-readable reason
        provenance: Creation record

    Example:
        >>> shield = CleanupShield.auto_detected(
        ...     ShieldType.REPETITIVE_HEADER,
        ...     NormalizedBBox(0.0, 0.0, 1.0, 0.08),
        ...     0.85,
        ...     "Repetitive header detected across 4/5 pages"
        ... )
    """
    id: str
    shield_type: ShieldType
    normalized_bbox: NormalizedBBox
    confidence: float
    why_detected: str
    page_target: PageTarget = field(default_factory=PageTarget.all)
    apply_mode: ApplyMode = ApplyMode.SUGGESTED
    risk_level: RiskLevel = RiskLevel.LOW
    min_confidence: float = AUTO_DETECTED_MIN_CONFIDENCE
    provenance: ShieldProvenance = field(default_factory=ShieldProvenance)

    @classmethod
    def auto_detected(
        cls,
        shield_type: ShieldType,
        bbox: NormalizedBBox,
        confidence: float,
        why_detected: str
    ) -> 'CleanupShield':
        """Create a suggested, low-risk shield found by a detector."""
        return cls(
            id=str(uuid.uuid4()),
            shield_type=shield_type,
            normalized_bbox=bbox,
            confidence=confidence,
            why_detected=why_detected,
        )

    @classmethod
    def user_defined(
        cls,
        bbox: NormalizedBBox,
        user_id: str,
        reason: Optional[str] = None
    ) -> 'CleanupShield':
        """Create an applied shield drawn by a reviewer for this session."""
        return cls(
            id=str(uuid.uuid4()),
            shield_type=ShieldType.USER_DEFINED,
            normalized_bbox=bbox,
            confidence=1.0,
            why_detected=reason or "User-defined shield",
            apply_mode=ApplyMode.APPLIED,
            min_confidence=0.0,
            provenance=ShieldProvenance(
                source=ShieldSource.SESSION_OVERRIDE,
                user_id=user_id,
            ),
        )

    def with_boost(self, boost: float, match_count: int, page_count: int) -> 'CleanupShield':
        """
        Return a copy with confidence raised by boost (capped at 1.0)
        and the page recurrence appended to why_detected.
        """
        return replace(
            self,
            confidence=min(self.confidence + boost, 1.0),
            why_detected=f"{self.why_detected} (found on {match_count}/{page_count} pages)",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'shield_type': self.shield_type.value,
            'normalized_bbox': self.normalized_bbox.to_dict(),
            'page_target': self.page_target.to_dict(),
            'apply_mode': self.apply_mode.value,
            'risk_level': self.risk_level.value,
            'confidence': self.confidence,
            'min_confidence': self.min_confidence,
            'why_detected': self.why_detected,
            'provenance': self.provenance.to_dict(),
        }
