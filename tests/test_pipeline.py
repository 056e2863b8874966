import json
import tempfile
import unittest
from pathlib import Path

import numpy as np
from PIL import Image

import main
from billnorm.cleanup import MultiPageConfig, ShieldType
from billnorm.orientation import OrientationConfig, PageArtifact
from billnorm.pipeline import DocumentNormalizer
from billnorm.resolution import FieldCandidate, ResolverConfig


def letterhead_page() -> np.ndarray:
    """White 400x500 page with striped header and footer bands and ruled body lines."""
    page = np.full((500, 400), 255, dtype=np.uint8)
    for row in range(0, 40, 8):
        page[row:row + 4, :] = 0
        page[496 - row:500 - row, :] = 0
    for row in range(120, 420, 30):
        page[row:row + 2, 40:360] = 0
    return page


class TestDocumentNormalizer(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.normalizer = DocumentNormalizer(
            OrientationConfig(enable_deskew=False, max_workers=2),
            MultiPageConfig(),
            ResolverConfig(),
        )

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def _pages(self, count: int):
        pages = []
        for number in range(1, count + 1):
            path = self.root / f"page_{number}.png"
            Image.fromarray(letterhead_page()).save(path)
            pages.append(PageArtifact(f"bill-1-p{number}", "bill-1", number, image_path=str(path)))
        return pages

    def test_normalize_document(self) -> None:
        pages = self._pages(3)

        result = self.normalizer.normalize_document(pages, self.root / "corrected")

        self.assertEqual(len(result.orientation_results), 3)
        for page, orientation in zip(pages, result.orientation_results):
            self.assertEqual(page.image_path, orientation.corrected_image_path)
            self.assertTrue(Path(page.image_path).exists())

        self.assertEqual(result.strip_result.pages_analyzed, 3)
        self.assertEqual(result.strip_result.header_match_count, 3)
        self.assertEqual(
            [s.shield_type for s in result.shields],
            [ShieldType.REPETITIVE_HEADER, ShieldType.REPETITIVE_FOOTER]
        )
        self.assertAlmostEqual(result.shields[0].confidence, 0.9)

        data = json.loads(result.to_json())
        self.assertEqual(len(data["pages"]), 3)

    def test_no_pages(self) -> None:
        result = self.normalizer.normalize_document([], self.root / "corrected")

        self.assertEqual(result.orientation_results, [])
        self.assertEqual(result.strip_result.pages_analyzed, 0)

    def test_resolve_delegates_to_resolver(self) -> None:
        result = self.normalizer.resolve({
            "vendor_name": [FieldCandidate("vendor_name", "Acme Corp", score=90)],
        })
        self.assertEqual(result.fields["vendor_name"].value, "Acme Corp")


class TestCommandLine(unittest.TestCase):
    def test_end_to_end_run(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            pages_dir = root / "scans"
            pages_dir.mkdir()
            for number in (1, 2):
                Image.fromarray(letterhead_page()).save(pages_dir / f"page_{number}.png")
            (pages_dir / "notes.txt").write_text("ignored")

            candidates = root / "candidates.json"
            candidates.write_text(json.dumps({
                "vendor_name": [{"value_raw": "Acme Corp", "score": 88}],
                "total": [{"value_raw": "$110.00", "score": 91}],
                "subtotal": [{"value_raw": "$100.00", "score": 91}],
                "tax": [{"value_raw": "$10.00", "score": 91}],
                "invoice_number": [{"value_raw": "INV-42", "score": 95}],
            }), encoding="utf-8")

            output_dir = root / "out"
            exit_code = main.main([
                "--pages", str(pages_dir),
                "--output", str(output_dir),
                "--candidates", str(candidates),
                "--excel",
            ])

            self.assertEqual(exit_code, 0)
            normalization = json.loads((output_dir / "normalization.json").read_text(encoding="utf-8"))
            resolution = json.loads((output_dir / "resolution.json").read_text(encoding="utf-8"))
            workbooks = list(output_dir.glob("bill_review_*.xlsx"))

        self.assertEqual(len(normalization["pages"]), 2)
        self.assertEqual(resolution["fields"]["total"]["normalized"], "110.00")
        self.assertTrue(resolution["cross_field_validations"][0]["passed"])
        self.assertEqual(len(workbooks), 1)

    def test_missing_pages_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            exit_code = main.main(["--pages", str(Path(tmp) / "nope"), "--output", tmp])
        self.assertEqual(exit_code, 1)


if __name__ == "__main__":
    unittest.main()
