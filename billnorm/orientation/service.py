"""
Orientation Service Module.

This module provides the OrientationService class that turns a raw page
scan into an upright, deskewed image plus the evidence for how it got
there.

Steps per page:
    1. Load the page and build a downscaled grayscale copy for analysis
    2. Score all four right-angle rotations (OrientationEvaluator)
    3. Rotate the full-resolution page to the best rotation
    4. Measure and optionally remove residual skew (SkewCorrector)
    5. Save the corrected page under a deterministic filename
    6. Compute confidence and assemble evidence

Pages are independent, so detect_pages() fans them out over a thread
pool. OpenCV releases the GIL during edge and line detection.

Usage:
    from billnorm.orientation import OrientationService

    service = OrientationService()
    result = service.detect_and_correct(page, "outputs/corrected")
    OrientationService.apply_to_page_artifact(page, result)
"""

import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence, Union

from PIL import Image

from billnorm.imaging.page_image import (
    load_page_image,
    save_page_image,
    rotate_right_angle,
    to_grayscale_array,
    downscale_for_analysis
)
from billnorm.utils.logger import get_logger
from billnorm.utils.helpers import clamp, elapsed_ms, safe_filename
from billnorm.utils.exceptions import OrientationProcessingError
from .evaluator import OrientationEvaluator
from .skew import SkewCorrector
from .results import (
    OrientationConfig,
    OrientationResult,
    PageArtifact,
    RotationEvidence,
    RotationScore
)

# Initialize module logger
logger = get_logger(__name__)

# Horizontal line count at which the line factor saturates
FULL_CONFIDENCE_LINE_COUNT = 20.0


def corrected_filename(page_id: str, rotation: int, skew_angle: float) -> str:
    """
    Deterministic name for a corrected page image.

    Characters that are not valid in filenames (<>:"/\\|?* and control
    characters) in page_id are replaced with "_", and leading/trailing
    dots and spaces are stripped.

    Example:
        >>> corrected_filename("page-001", 90, 2.46)
        'corrected_page-001_rot90_skew2.5.png'
    """
    return f"corrected_{safe_filename(page_id)}_rot{rotation}_skew{skew_angle:.1f}.png"


def pick_best_rotation(scores: Sequence[RotationScore]) -> RotationScore:
    """
    Return the highest-scoring rotation.

    Ties go to the earliest angle in 0/90/180/270 order, so a page
    with no measurable text is left unrotated.

    Raises:
        OrientationProcessingError: If scores is empty.
    """
    if not scores:
        raise OrientationProcessingError("No rotation scores available")
    return max(scores, key=lambda s: s.score)


def calculate_confidence(best: RotationScore, all_scores: Sequence[RotationScore]) -> float:
    """
    Confidence that the chosen rotation is correct.

    Weighted blend of the winner's own score (0.5), its margin over the
    runner-up (0.3) and how many horizontal lines support it (0.2).

    Args:
        best: Winning rotation score.
        all_scores: All evaluated rotation scores.

    Returns:
        Confidence in [0, 1].
    """
    ranked = sorted((s.score for s in all_scores), reverse=True)
    second_best = ranked[1] if len(ranked) > 1 else 0.0

    margin = best.score - second_best
    line_confidence = min(best.horizontal_lines / FULL_CONFIDENCE_LINE_COUNT, 1.0)

    confidence = best.score * 0.5 + margin * 0.3 + line_confidence * 0.2
    return clamp(confidence, 0.0, 1.0)


def build_evidence(
    rotation_scores: Sequence[RotationScore],
    best: RotationScore,
    skew_angle: float
) -> RotationEvidence:
    """Assemble the evidence record for a rotation decision."""
    return RotationEvidence(
        rotation_scores=list(rotation_scores),
        text_lines_detected=best.horizontal_lines,
        average_line_angle=skew_angle,
        confidence_factors=[
            ("Readability score", best.score),
            ("Horizontal lines detected", min(best.horizontal_lines / FULL_CONFIDENCE_LINE_COUNT, 1.0)),
            ("Text density", best.text_density),
        ],
    )


class OrientationService:
    """
    Detects page rotation and skew and writes a corrected page image.

    Attributes:
        config: OrientationConfig in effect
        evaluator: OrientationEvaluator used for rotation scoring
        skew_corrector: SkewCorrector used after rotation

    Example:
        >>> service = OrientationService(OrientationConfig(enable_deskew=False))
        >>> results = service.detect_pages(pages, "outputs/corrected")
    """

    def __init__(self, config: Optional[OrientationConfig] = None) -> None:
        """
        Initialize the service.

        Args:
            config: Optional configuration. Defaults to the values in
                    settings.yaml (or built-in defaults).
        """
        self.config = config or OrientationConfig.from_settings()
        self.evaluator = OrientationEvaluator()
        self.skew_corrector = SkewCorrector(
            max_skew_angle=self.config.max_skew_angle,
            background_fill=self.config.background_fill
        )

        logger.debug(
            f"OrientationService initialized (deskew={self.config.enable_deskew}, "
            f"max_skew={self.config.max_skew_angle})"
        )

    def detect_and_correct(
        self,
        page: PageArtifact,
        output_dir: Union[str, Path]
    ) -> OrientationResult:
        """
        Load a page from disk and orient it.

        Args:
            page: Page artifact whose image_path points at the scan.
            output_dir: Directory for the corrected image (created if absent).

        Returns:
            OrientationResult for the page. The page itself is not
            modified; call apply_to_page_artifact() to record the result.

        Raises:
            ImageLoadError: If the scan cannot be opened.
            ImageSaveError: If the corrected image cannot be written.
            OrientationProcessingError: If rotation scoring fails.
        """
        image = load_page_image(page.image_path)
        return self.correct_image(image, page.artifact_id, output_dir)

    def correct_image(
        self,
        image: Image.Image,
        page_id: str,
        output_dir: Union[str, Path]
    ) -> OrientationResult:
        """
        Orient an already-decoded page image.

        Args:
            image: Page as a PIL Image.
            page_id: Identifier used in the output filename.
            output_dir: Directory for the corrected image.

        Returns:
            OrientationResult for the page.
        """
        start_time = time.perf_counter()

        gray = downscale_for_analysis(
            to_grayscale_array(image),
            self.config.analysis_max_dimension
        )

        rotation_scores = self.evaluator.evaluate_rotations(gray)
        best = pick_best_rotation(rotation_scores)

        rotated = rotate_right_angle(image, best.angle)

        skew_angle = self.skew_corrector.detect_skew_angle(rotate_right_angle(gray, best.angle))

        deskew_applied = False
        if self.config.enable_deskew and SkewCorrector.needs_correction(skew_angle):
            rotated = self.skew_corrector.deskew(rotated, skew_angle)
            deskew_applied = True

        output_path = Path(output_dir) / corrected_filename(page_id, best.angle, skew_angle)
        save_page_image(rotated, output_path)

        confidence = calculate_confidence(best, rotation_scores)
        evidence = build_evidence(rotation_scores, best, skew_angle)

        flags = []
        if confidence < self.config.min_confidence:
            flags.append("below_min_confidence")
            logger.warning(
                f"Page {page_id}: rotation confidence {confidence:.2f} below "
                f"minimum {self.config.min_confidence:.2f}"
            )

        result = OrientationResult(
            rotation=best.angle,
            confidence=confidence,
            skew_angle=skew_angle,
            deskew_applied=deskew_applied,
            corrected_image_path=str(output_path),
            evidence=evidence,
            processing_time_ms=elapsed_ms(start_time),
            flags=flags,
        )

        logger.info(
            f"Page {page_id}: rotation={result.rotation}, skew={skew_angle:.1f}, "
            f"deskewed={deskew_applied}, confidence={confidence:.2f} "
            f"({result.processing_time_ms} ms)"
        )
        return result

    def detect_pages(
        self,
        pages: Sequence[PageArtifact],
        output_dir: Union[str, Path],
        max_workers: Optional[int] = None
    ) -> List[OrientationResult]:
        """
        Orient every page of a document in parallel.

        Results come back in input order. The first failing page raises
        its error; whether to abort the document or fall back to the
        unrotated pages is left to the caller.

        Args:
            pages: Page artifacts to process.
            output_dir: Directory for corrected images.
            max_workers: Thread count (defaults to config.max_workers).

        Returns:
            One OrientationResult per page.
        """
        if not pages:
            return []

        workers = max(1, min(max_workers or self.config.max_workers, len(pages)))
        logger.info(f"Orienting {len(pages)} pages with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda page: self.detect_and_correct(page, output_dir), pages))

    @staticmethod
    def apply_to_page_artifact(page: PageArtifact, result: OrientationResult) -> PageArtifact:
        """
        Record an orientation result on its page artifact.

        Updates rotation, rotation_score and image_path in place and
        returns the same artifact for chaining.
        """
        page.rotation = result.rotation
        page.rotation_score = result.confidence
        page.image_path = result.corrected_image_path
        return page
