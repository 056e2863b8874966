"""
Document Normalization Pipeline.

This module provides the DocumentNormalizer class that chains the
engine's stages for one bill:

    1. Orientation: rotate and deskew every page (in parallel)
    2. Cleanup: find headers/footers repeated across the corrected pages
    3. Resolution: resolve field candidates once they are collected

Candidate extraction (OCR, pattern matching) happens outside this
engine, between steps 2 and 3, using the shields from step 2.

Usage:
    from billnorm.pipeline import DocumentNormalizer

    normalizer = DocumentNormalizer()
    normalized = normalizer.normalize_document(pages, "outputs/corrected")
    result = normalizer.resolve(candidates_by_field)
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from billnorm.cleanup import CleanupShield, MultiPageConfig, MultiPageStripResult, detect_multi_page_strips
from billnorm.imaging import load_page_image
from billnorm.orientation import OrientationConfig, OrientationResult, OrientationService, PageArtifact
from billnorm.resolution import FieldCandidate, FieldResolver, ResolutionResult, ResolverConfig
from billnorm.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


@dataclass
class DocumentNormalizationResult:
    """
    Orientation and cleanup output for one document.

    Attributes:
        pages: Page artifacts after orientation was applied
        orientation_results: One result per page, in page order
        strip_result: Repeated header/footer analysis
        shields: All shields for the candidate generator
    """
    pages: List[PageArtifact] = field(default_factory=list)
    orientation_results: List[OrientationResult] = field(default_factory=list)
    strip_result: MultiPageStripResult = field(default_factory=MultiPageStripResult)
    shields: List[CleanupShield] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pages': [p.to_dict() for p in self.pages],
            'orientation_results': [r.to_dict() for r in self.orientation_results],
            'strip_result': self.strip_result.to_dict(),
            'shields': [s.to_dict() for s in self.shields],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


class DocumentNormalizer:
    """
    Runs orientation, cleanup and resolution for a document.

    Attributes:
        orientation_service: Per-page orientation stage
        multi_page_config: Header/footer detection settings
        resolver: Field resolution stage
    """

    def __init__(
        self,
        orientation_config: Optional[OrientationConfig] = None,
        multi_page_config: Optional[MultiPageConfig] = None,
        resolver_config: Optional[ResolverConfig] = None
    ) -> None:
        self.orientation_service = OrientationService(orientation_config)
        self.multi_page_config = multi_page_config or MultiPageConfig.from_settings()
        self.resolver = FieldResolver(resolver_config)

    def normalize_document(
        self,
        pages: Sequence[PageArtifact],
        output_dir: Union[str, Path],
        max_workers: Optional[int] = None
    ) -> DocumentNormalizationResult:
        """
        Orient every page and detect repeated bands.

        Page artifacts are updated through the orientation apply step,
        so afterwards each image_path points at the corrected image.

        Args:
            pages: Page artifacts in page order.
            output_dir: Directory for corrected images.
            max_workers: Orientation thread count.

        Returns:
            DocumentNormalizationResult for the document.

        Raises:
            BillNormalizationError: If any page fails; no partial result
                is returned.
        """
        if not pages:
            logger.warning("No pages to normalize")
            return DocumentNormalizationResult()

        orientation_results = self.orientation_service.detect_pages(pages, output_dir, max_workers)

        for page, result in zip(pages, orientation_results):
            OrientationService.apply_to_page_artifact(page, result)

        corrected = [load_page_image(result.corrected_image_path) for result in orientation_results]
        strip_result = detect_multi_page_strips(corrected, self.multi_page_config)

        logger.info(
            f"Document normalized: {len(pages)} pages, "
            f"{len(strip_result.all_shields())} shields"
        )

        return DocumentNormalizationResult(
            pages=list(pages),
            orientation_results=orientation_results,
            strip_result=strip_result,
            shields=strip_result.all_shields(),
        )

    def resolve(self, candidates_by_field: Dict[str, List[FieldCandidate]]) -> ResolutionResult:
        """Resolve the document's collected field candidates."""
        return self.resolver.resolve_fields(candidates_by_field)
