"""
Orientation Module for the Bill Normalization Engine.

This module provides functionality for:
    - Scoring page readability under 0/90/180/270 degree rotations
    - Measuring and removing residual skew
    - Writing corrected page images with traceable filenames
"""

from .results import (
    OrientationConfig,
    RotationScore,
    RotationEvidence,
    OrientationResult,
    PageArtifact
)
from .evaluator import OrientationEvaluator, count_line_orientations, readability_score
from .skew import SkewCorrector
from .service import OrientationService, calculate_confidence, corrected_filename

__all__ = [
    'OrientationConfig',
    'RotationScore',
    'RotationEvidence',
    'OrientationResult',
    'PageArtifact',
    'OrientationEvaluator',
    'count_line_orientations',
    'readability_score',
    'SkewCorrector',
    'OrientationService',
    'calculate_confidence',
    'corrected_filename'
]
