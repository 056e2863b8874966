import unittest

import numpy as np

from billnorm.cleanup import (
    ApplyMode,
    CleanupShield,
    MultiPageConfig,
    PageTarget,
    ShieldSource,
    ShieldType,
    StripData,
    boost_multi_page_confidence,
    calculate_confidence_boost,
    detect_multi_page_strips,
    extract_bottom_strip,
    extract_top_strip,
    has_similar_shield_on_page,
    strips_are_similar,
)
from billnorm.imaging import NormalizedBBox

HEADER = NormalizedBBox(0.0, 0.0, 1.0, 0.08)
FOOTER = NormalizedBBox(0.0, 0.92, 1.0, 0.08)


def page_with_header(height: int = 500, width: int = 400, header: bool = True) -> np.ndarray:
    """White page; optionally a striped letterhead in the top 8%."""
    page = np.full((height, width), 255, dtype=np.uint8)
    if header:
        for row in range(0, 40, 8):
            page[row:row + 4, :] = 0
    return page


def blank_strip() -> StripData:
    return StripData(bbox=HEADER, mean_intensity=255.0, variance=0.0, has_content=False)


def content_strip(mean: float, variance: float) -> StripData:
    return StripData(bbox=HEADER, mean_intensity=mean, variance=variance, has_content=variance > 100.0)


class TestStrips(unittest.TestCase):
    def test_top_strip_geometry(self) -> None:
        strip = extract_top_strip(np.zeros((100, 100), dtype=np.uint8), 0.1)

        self.assertEqual(strip.bbox.x, 0.0)
        self.assertEqual(strip.bbox.y, 0.0)
        self.assertEqual(strip.bbox.width, 1.0)
        self.assertAlmostEqual(strip.bbox.height, 0.1)
        self.assertFalse(strip.has_content)

    def test_bottom_strip_geometry(self) -> None:
        strip = extract_bottom_strip(np.zeros((100, 50), dtype=np.uint8), 0.1)

        self.assertAlmostEqual(strip.bbox.y, 0.9)
        self.assertAlmostEqual(strip.bbox.height, 0.1)
        self.assertTrue(strip.bbox.is_valid())

    def test_strip_is_at_least_one_row(self) -> None:
        strip = extract_top_strip(np.zeros((10, 10), dtype=np.uint8), 0.01)
        self.assertAlmostEqual(strip.bbox.height, 0.1)

    def test_striped_header_has_content(self) -> None:
        strip = extract_top_strip(page_with_header(), 0.08)

        self.assertTrue(strip.has_content)
        self.assertGreater(strip.variance, 100.0)

    def test_blank_strips_always_match(self) -> None:
        for threshold in (0.01, 0.5, 0.85, 1.0):
            self.assertTrue(strips_are_similar(blank_strip(), blank_strip(), threshold))

    def test_blank_never_matches_content(self) -> None:
        self.assertFalse(strips_are_similar(blank_strip(), content_strip(128.0, 5000.0), 0.01))

    def test_similarity_threshold_is_inclusive(self) -> None:
        a = content_strip(100.0, 1000.0)
        b = content_strip(100.0, 500.0)
        # mean similarity 1.0, variance ratio 0.5 -> 0.75
        self.assertTrue(strips_are_similar(a, b, 0.75))
        self.assertFalse(strips_are_similar(a, b, 0.76))


class TestConfidenceBoost(unittest.TestCase):
    def test_single_match_gives_no_boost(self) -> None:
        for pages in (1, 2, 5, 50):
            self.assertEqual(calculate_confidence_boost(1, pages, 0.25), 0.0)

    def test_all_pages_give_full_boost(self) -> None:
        for pages in (2, 5, 50):
            self.assertAlmostEqual(calculate_confidence_boost(pages, pages, 0.25), 0.25)

    def test_single_page_document_gives_no_boost(self) -> None:
        self.assertEqual(calculate_confidence_boost(1, 1, 0.25), 0.0)


class TestMultiPageDetection(unittest.TestCase):
    def test_header_repeated_on_four_of_five_pages(self) -> None:
        pages = [page_with_header() for _ in range(4)] + [page_with_header(header=False)]

        result = detect_multi_page_strips(pages, MultiPageConfig())

        self.assertEqual(result.pages_analyzed, 5)
        self.assertEqual(result.header_match_count, 4)
        self.assertEqual(len(result.header_shields), 1)

        shield = result.header_shields[0]
        self.assertEqual(shield.shield_type, ShieldType.REPETITIVE_HEADER)
        self.assertAlmostEqual(shield.confidence, 0.85)
        self.assertEqual(shield.why_detected, "Repetitive header detected across 4/5 pages")
        self.assertEqual(shield.apply_mode, ApplyMode.SUGGESTED)

    def test_blank_footers_produce_no_shield(self) -> None:
        pages = [page_with_header() for _ in range(3)]

        result = detect_multi_page_strips(pages, MultiPageConfig())

        self.assertEqual(result.footer_match_count, 3)
        self.assertEqual(result.footer_shields, [])
        self.assertEqual(len(result.all_shields()), 1)

    def test_single_page_produces_no_shield(self) -> None:
        result = detect_multi_page_strips([page_with_header()], MultiPageConfig())

        self.assertEqual(result.pages_analyzed, 1)
        self.assertEqual(result.header_match_count, 1)
        self.assertEqual(result.all_shields(), [])

    def test_zero_pages(self) -> None:
        result = detect_multi_page_strips([], MultiPageConfig())

        self.assertEqual(result.pages_analyzed, 0)
        self.assertEqual(result.all_shields(), [])

    def test_result_serializes(self) -> None:
        result = detect_multi_page_strips([page_with_header(), page_with_header()], MultiPageConfig())
        data = result.to_dict()

        self.assertEqual(data["header_shields"][0]["shield_type"], "RepetitiveHeader")
        self.assertIn('"pages_analyzed": 2', result.to_json())


class TestShieldBoosting(unittest.TestCase):
    def _shield(self, shield_type: ShieldType = ShieldType.LOGO, bbox: NormalizedBBox = HEADER) -> CleanupShield:
        return CleanupShield.auto_detected(shield_type, bbox, 0.6, "Logo detected")

    def test_similar_shield_requires_same_type_and_overlap(self) -> None:
        shield = self._shield()

        self.assertTrue(has_similar_shield_on_page(shield, [self._shield()], 0.7))
        self.assertFalse(has_similar_shield_on_page(shield, [self._shield(ShieldType.STAMP)], 0.7))
        self.assertFalse(has_similar_shield_on_page(shield, [self._shield(bbox=FOOTER)], 0.7))

    def test_recurring_shield_is_boosted(self) -> None:
        original = self._shield()
        pages = [[original], [self._shield()], [self._shield()], []]

        boosted = boost_multi_page_confidence(pages, MultiPageConfig())

        self.assertEqual(len(boosted), 1)
        self.assertAlmostEqual(boosted[0].confidence, 0.6 + 0.75 * 0.25)
        self.assertTrue(boosted[0].why_detected.endswith("(found on 3/4 pages)"))
        self.assertEqual(boosted[0].id, original.id)
        # Shields are values: the input is untouched
        self.assertEqual(original.confidence, 0.6)
        self.assertEqual(original.why_detected, "Logo detected")

    def test_unique_shield_passes_through(self) -> None:
        original = self._shield()
        boosted = boost_multi_page_confidence([[original], [self._shield(ShieldType.STAMP)]], MultiPageConfig())
        self.assertIs(boosted[0], original)

    def test_single_page_and_empty_input(self) -> None:
        shields = [self._shield(), self._shield(ShieldType.STAMP)]

        self.assertEqual(boost_multi_page_confidence([shields], MultiPageConfig()), shields)
        self.assertEqual(boost_multi_page_confidence([], MultiPageConfig()), [])

    def test_boosted_confidence_is_capped(self) -> None:
        shield = CleanupShield.auto_detected(ShieldType.LOGO, HEADER, 0.95, "Logo detected")
        boosted = boost_multi_page_confidence([[shield], [shield]], MultiPageConfig())
        self.assertEqual(boosted[0].confidence, 1.0)


class TestShieldRecord(unittest.TestCase):
    def test_user_defined_shield(self) -> None:
        shield = CleanupShield.user_defined(HEADER, "reviewer-7", "Covers the bank details")

        self.assertEqual(shield.shield_type, ShieldType.USER_DEFINED)
        self.assertEqual(shield.apply_mode, ApplyMode.APPLIED)
        self.assertEqual(shield.confidence, 1.0)
        self.assertEqual(shield.provenance.source, ShieldSource.SESSION_OVERRIDE)
        self.assertEqual(shield.provenance.user_id, "reviewer-7")

    def test_source_precedence(self) -> None:
        self.assertLess(ShieldSource.AUTO_DETECTED, ShieldSource.VENDOR_RULE)
        self.assertLess(ShieldSource.TEMPLATE_RULE, ShieldSource.SESSION_OVERRIDE)

    def test_page_target(self) -> None:
        self.assertTrue(PageTarget.all().applies_to(3, 5))
        self.assertTrue(PageTarget.first().applies_to(1, 5))
        self.assertFalse(PageTarget.first().applies_to(2, 5))
        self.assertTrue(PageTarget.last().applies_to(5, 5))
        self.assertTrue(PageTarget.specific([2, 4]).applies_to(4, 5))
        self.assertFalse(PageTarget.specific([2, 4]).applies_to(3, 5))


if __name__ == "__main__":
    unittest.main()
