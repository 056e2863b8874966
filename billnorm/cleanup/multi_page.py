"""
Multi-Page Strip Detection Module.

Finds headers and footers that repeat across the pages of one bill and
turns them into cleanup shields. A region seen on more pages earns a
larger confidence boost.

Page 1 is the reference: every page (page 1 included) is compared to
it, so a match count of 1 means nothing repeats. A cover page that
differs from the rest therefore hides a header shared by all later
pages.

Usage:
    from billnorm.cleanup import MultiPageConfig, detect_multi_page_strips

    result = detect_multi_page_strips(page_images, MultiPageConfig())
    for shield in result.all_shields():
        print(shield.why_detected, shield.confidence)
"""

import json
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Sequence

from config import get_section
from billnorm.imaging.geometry import bbox_iou
from billnorm.imaging.page_image import PageImage
from billnorm.utils.logger import get_logger
from .shields import CleanupShield, ShieldType
from .strips import StripData, extract_bottom_strip, extract_top_strip, strips_are_similar

# Initialize module logger
logger = get_logger(__name__)


@dataclass
class MultiPageConfig:
    """
    Configuration for multi-page strip detection.

    Attributes:
        header_strip_height: Header band height as fraction of page height
        footer_strip_height: Footer band height as fraction of page height
        similarity_threshold: Minimum strip similarity to count as a match
        base_confidence: Confidence before any recurrence boost
        max_confidence_boost: Boost when every page matches
        iou_threshold: Minimum IoU for two shields to be the same region
    """
    header_strip_height: float = 0.08
    footer_strip_height: float = 0.08
    similarity_threshold: float = 0.85
    base_confidence: float = 0.65
    max_confidence_boost: float = 0.25
    iou_threshold: float = 0.7

    @classmethod
    def from_settings(cls) -> 'MultiPageConfig':
        """Build a config from the ``cleanup.multi_page`` section of settings.yaml."""
        known = {f.name for f in fields(cls)}
        overrides = {k: v for k, v in get_section("cleanup.multi_page").items() if k in known}
        return cls(**overrides)


@dataclass
class MultiPageStripResult:
    """
    Result of multi-page strip analysis.

    Attributes:
        header_shields: Repetitive header shields (zero or one)
        footer_shields: Repetitive footer shields (zero or one)
        pages_analyzed: Number of pages compared
        header_match_count: Pages whose header matches page 1 (page 1 included)
        footer_match_count: Pages whose footer matches page 1 (page 1 included)
    """
    header_shields: List[CleanupShield] = field(default_factory=list)
    footer_shields: List[CleanupShield] = field(default_factory=list)
    pages_analyzed: int = 0
    header_match_count: int = 0
    footer_match_count: int = 0

    def all_shields(self) -> List[CleanupShield]:
        """Header shields followed by footer shields."""
        return list(self.header_shields) + list(self.footer_shields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'header_shields': [s.to_dict() for s in self.header_shields],
            'footer_shields': [s.to_dict() for s in self.footer_shields],
            'pages_analyzed': self.pages_analyzed,
            'header_match_count': self.header_match_count,
            'footer_match_count': self.footer_match_count,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


def calculate_confidence_boost(match_count: int, total_pages: int, max_boost: float) -> float:
    """
    Confidence boost for a region recurring on match_count of total_pages.

    Scales linearly with the match ratio. No boost for single pages or
    for a region found only on the reference page.

    Example:
        >>> calculate_confidence_boost(4, 5, 0.25)
        0.2
        >>> calculate_confidence_boost(1, 5, 0.25)
        0.0
    """
    if total_pages <= 1 or match_count <= 1:
        return 0.0
    return (match_count / total_pages) * max_boost


def _count_matches(strips: Sequence[StripData], threshold: float) -> int:
    reference = strips[0]
    return sum(1 for strip in strips if strips_are_similar(reference, strip, threshold))


def _repetitive_shield(
    shield_type: ShieldType,
    label: str,
    reference: StripData,
    match_count: int,
    pages_analyzed: int,
    config: MultiPageConfig
) -> Optional[CleanupShield]:
    """Build a shield for a repeated band, or None when nothing repeats."""
    if match_count <= 1 or not reference.has_content:
        return None

    boost = calculate_confidence_boost(match_count, pages_analyzed, config.max_confidence_boost)
    confidence = min(config.base_confidence + boost, 1.0)

    return CleanupShield.auto_detected(
        shield_type,
        reference.bbox,
        confidence,
        f"Repetitive {label} detected across {match_count}/{pages_analyzed} pages",
    )


def detect_multi_page_strips(
    pages: Sequence[PageImage],
    config: Optional[MultiPageConfig] = None
) -> MultiPageStripResult:
    """
    Detect repeated header and footer bands across a document.

    Args:
        pages: All page images of one document, in page order.
        config: Detection parameters (defaults from settings.yaml).

    Returns:
        MultiPageStripResult with at most one header and one footer shield.
        An empty page list yields an empty result with pages_analyzed=0.
    """
    config = config or MultiPageConfig.from_settings()

    if not pages:
        return MultiPageStripResult()

    pages_analyzed = len(pages)

    header_strips = [extract_top_strip(page, config.header_strip_height) for page in pages]
    footer_strips = [extract_bottom_strip(page, config.footer_strip_height) for page in pages]

    header_match_count = _count_matches(header_strips, config.similarity_threshold)
    footer_match_count = _count_matches(footer_strips, config.similarity_threshold)

    logger.debug(
        f"Reference header: mean={header_strips[0].mean_intensity:.1f}, "
        f"var={header_strips[0].variance:.1f}; "
        f"reference footer: mean={footer_strips[0].mean_intensity:.1f}, "
        f"var={footer_strips[0].variance:.1f}"
    )

    header_shield = _repetitive_shield(
        ShieldType.REPETITIVE_HEADER, "header", header_strips[0],
        header_match_count, pages_analyzed, config
    )
    footer_shield = _repetitive_shield(
        ShieldType.REPETITIVE_FOOTER, "footer", footer_strips[0],
        footer_match_count, pages_analyzed, config
    )

    result = MultiPageStripResult(
        header_shields=[header_shield] if header_shield else [],
        footer_shields=[footer_shield] if footer_shield else [],
        pages_analyzed=pages_analyzed,
        header_match_count=header_match_count,
        footer_match_count=footer_match_count,
    )

    logger.info(
        f"Multi-page strips: {pages_analyzed} pages, header matches={header_match_count}, "
        f"footer matches={footer_match_count}, shields={len(result.all_shields())}"
    )
    return result


def has_similar_shield_on_page(
    shield: CleanupShield,
    other_shields: Sequence[CleanupShield],
    iou_threshold: float
) -> bool:
    """
    Check whether another page carries the same region.

    Two shields are the same region iff they share a shield type and
    their IoU is at least iou_threshold.
    """
    return any(
        other.shield_type == shield.shield_type
        and bbox_iou(shield.normalized_bbox, other.normalized_bbox) >= iou_threshold
        for other in other_shields
    )


def boost_multi_page_confidence(
    page_shields: Sequence[Sequence[CleanupShield]],
    config: Optional[MultiPageConfig] = None
) -> List[CleanupShield]:
    """
    Raise the confidence of page-1 shields that recur on later pages.

    Args:
        page_shields: Shields detected on each page, in page order.
        config: Detection parameters (defaults from settings.yaml).

    Returns:
        One shield per page-1 shield. Recurring shields are replaced by
        boosted copies whose explanation ends in "(found on X/Y pages)";
        the rest pass through unchanged. A single page passes through as-is.
    """
    config = config or MultiPageConfig.from_settings()

    if not page_shields:
        return []

    page_count = len(page_shields)
    if page_count == 1:
        return list(page_shields[0])

    result_shields = []

    for shield in page_shields[0]:
        match_count = 1 + sum(
            1 for other_page in page_shields[1:]
            if has_similar_shield_on_page(shield, other_page, config.iou_threshold)
        )

        if match_count > 1:
            boost = calculate_confidence_boost(match_count, page_count, config.max_confidence_boost)
            shield = shield.with_boost(boost, match_count, page_count)
            logger.debug(
                f"{shield.shield_type.value} shield found on {match_count}/{page_count} pages, "
                f"confidence now {shield.confidence:.2f}"
            )

        result_shields.append(shield)

    return result_shields
