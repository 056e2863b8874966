"""
Orientation Data Classes.

Configuration, per-rotation scores and the per-page result produced by
OrientationService, plus the caller-owned PageArtifact record that the
result is applied to.

Classes:
    OrientationConfig: Tunables with documented defaults
    RotationScore: Readability of one candidate rotation
    RotationEvidence: Why a rotation was chosen
    OrientationResult: Final per-page outcome
    PageArtifact: Page record owned by the surrounding pipeline
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional, Tuple

from config import get_section


@dataclass
class OrientationConfig:
    """
    Configuration for orientation detection.

    Attributes:
        max_skew_angle: Largest skew (degrees) that will be reported/corrected
        min_confidence: Results below this are flagged for review
        enable_deskew: Apply skew correction after rotation
        analysis_max_dimension: Longest side used for edge/line analysis
        background_fill: Gray level used for pixels exposed by deskew
        max_workers: Thread pool size for multi-page detection
    """
    max_skew_angle: float = 10.0
    min_confidence: float = 0.6
    enable_deskew: bool = True
    analysis_max_dimension: int = 1200
    background_fill: int = 255
    max_workers: int = 4

    @classmethod
    def from_settings(cls) -> 'OrientationConfig':
        """Build a config from the ``orientation`` section of settings.yaml."""
        known = {f.name for f in fields(cls)}
        overrides = {k: v for k, v in get_section("orientation").items() if k in known}
        return cls(**overrides)


@dataclass
class RotationScore:
    """
    Readability score for one candidate rotation of a page.

    Attributes:
        angle: Clockwise rotation (0, 90, 180 or 270)
        score: Readability in [0, 1]
        horizontal_lines: Lines within 15 degrees of horizontal
        vertical_lines: Lines within 15 degrees of vertical
        text_density: Fraction of edge pixels in the rotated page
    """
    angle: int
    score: float
    horizontal_lines: int
    vertical_lines: int
    text_density: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RotationEvidence:
    """
    Evidence behind a rotation decision.

    Attributes:
        rotation_scores: Scores for all four rotations, in 0/90/180/270 order
        text_lines_detected: Horizontal lines found at the winning rotation
        average_line_angle: Skew angle measured after rotation (degrees)
        confidence_factors: Named inputs to the confidence score
    """
    rotation_scores: List[RotationScore] = field(default_factory=list)
    text_lines_detected: int = 0
    average_line_angle: float = 0.0
    confidence_factors: List[Tuple[str, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rotation_scores': [s.to_dict() for s in self.rotation_scores],
            'text_lines_detected': self.text_lines_detected,
            'average_line_angle': self.average_line_angle,
            'confidence_factors': [[name, value] for name, value in self.confidence_factors],
        }


@dataclass
class OrientationResult:
    """
    Outcome of orientation detection and correction for one page.

    Attributes:
        rotation: Chosen clockwise rotation (0, 90, 180 or 270)
        confidence: Confidence in the rotation (0-1)
        skew_angle: Residual skew measured after rotation (degrees)
        deskew_applied: Whether the skew was corrected
        corrected_image_path: Where the corrected page was written
        evidence: Scores and factors behind the decision
        processing_time_ms: Wall time spent on the page
        flags: Data-quality markers such as "below_min_confidence"
    """
    rotation: int
    confidence: float
    skew_angle: float
    deskew_applied: bool
    corrected_image_path: str
    evidence: RotationEvidence
    processing_time_ms: int = 0
    flags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rotation': self.rotation,
            'confidence': self.confidence,
            'skew_angle': self.skew_angle,
            'deskew_applied': self.deskew_applied,
            'corrected_image_path': self.corrected_image_path,
            'evidence': self.evidence.to_dict(),
            'processing_time_ms': self.processing_time_ms,
            'flags': list(self.flags),
        }


@dataclass
class PageArtifact:
    """
    A rasterized page as tracked by the surrounding bill pipeline.

    The engine only reads ``image_path`` and, through
    OrientationService.apply_to_page_artifact, updates ``rotation``,
    ``rotation_score`` and ``image_path``.

    Example:
        >>> page = PageArtifact("page-001", "input-001", 1, image_path="scan_1.png")
    """
    artifact_id: str
    input_id: str
    page_number: int
    dpi: int = 300
    rotation: int = 0
    rotation_score: float = 1.0
    image_path: str = ""
    ocr_artifact_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
