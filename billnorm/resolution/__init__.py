"""
Resolution Module for the Bill Normalization Engine.

This module provides functionality for:
    - Normalizing raw candidate values (dates, amounts)
    - Resolving competing candidates into one value per field
    - Cross-field validation and contradiction detection
"""

from .candidates import EvidenceType, Evidence, FieldCandidate, load_candidates
from .results import (
    FieldValue,
    ValidationType,
    CrossFieldValidation,
    ContradictionSeverity,
    Contradiction,
    ResolutionResult
)
from .normalizers import DateNormalizer, AmountNormalizer, CandidateNormalizer
from .resolver import ResolverConfig, FieldResolver, consensus_boost

__all__ = [
    'EvidenceType',
    'Evidence',
    'FieldCandidate',
    'load_candidates',
    'FieldValue',
    'ValidationType',
    'CrossFieldValidation',
    'ContradictionSeverity',
    'Contradiction',
    'ResolutionResult',
    'DateNormalizer',
    'AmountNormalizer',
    'CandidateNormalizer',
    'ResolverConfig',
    'FieldResolver',
    'consensus_boost'
]
