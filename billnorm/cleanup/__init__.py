"""
Cleanup Module for the Bill Normalization Engine.

This module provides functionality for:
    - Describing header/footer bands of a page (strip analysis)
    - Detecting bands repeated across the pages of a document
    - Boosting shields that recur on several pages

Shields produced here are read-only outputs for the candidate generator.
"""

from .shields import (
    ShieldType,
    ApplyMode,
    RiskLevel,
    ShieldSource,
    PageTarget,
    PageTargetKind,
    ShieldProvenance,
    CleanupShield
)
from .strips import (
    StripData,
    extract_top_strip,
    extract_bottom_strip,
    strip_similarity,
    strips_are_similar
)
from .multi_page import (
    MultiPageConfig,
    MultiPageStripResult,
    calculate_confidence_boost,
    detect_multi_page_strips,
    has_similar_shield_on_page,
    boost_multi_page_confidence
)

__all__ = [
    'ShieldType',
    'ApplyMode',
    'RiskLevel',
    'ShieldSource',
    'PageTarget',
    'PageTargetKind',
    'ShieldProvenance',
    'CleanupShield',
    'StripData',
    'extract_top_strip',
    'extract_bottom_strip',
    'strip_similarity',
    'strips_are_similar',
    'MultiPageConfig',
    'MultiPageStripResult',
    'calculate_confidence_boost',
    'detect_multi_page_strips',
    'has_similar_shield_on_page',
    'boost_multi_page_confidence'
]
