import json
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest import mock

from openpyxl import load_workbook

from billnorm.reporting import ReviewExporter, save_json
from billnorm.resolution import FieldCandidate, FieldResolver, ResolverConfig
from billnorm.utils.exceptions import ReportExportError


def sample_result():
    candidates = {
        "vendor_name": [
            FieldCandidate("vendor_name", "Acme Corp", score=80),
            FieldCandidate("vendor_name", "Acme Co", score=70),
        ],
        "total": [FieldCandidate("total", "$120.00", "120.00", score=90)],
        "subtotal": [FieldCandidate("subtotal", "$100.00", "100.00", score=90)],
        "tax": [FieldCandidate("tax", "$10.00", "10.00", score=90)],
    }
    with mock.patch("billnorm.resolution.validators._today", return_value=date(2026, 1, 15)):
        return FieldResolver(ResolverConfig()).resolve_fields(candidates)


class TestReviewExporter(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.result = sample_result()

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_workbook_has_review_sheets(self) -> None:
        path = ReviewExporter().export(self.result, "review.xlsx", self.tmp.name)

        self.assertTrue(Path(path).exists())
        workbook = load_workbook(path)
        self.assertEqual(workbook.sheetnames, ["Resolved Fields", "Validations", "Contradictions"])

        fields = workbook["Resolved Fields"]
        self.assertEqual(fields["A1"].value, "Field")
        self.assertEqual(fields["A2"].value, "vendor_name")
        self.assertEqual(fields["B2"].value, "Acme Corp")
        self.assertEqual(fields["G2"].value, "Acme Co (70)")

        validations = workbook["Validations"]
        self.assertEqual(validations.max_row, 5)
        self.assertEqual(validations["A2"].value, "TotalEqualsSubtotalPlusTax")
        self.assertEqual(validations["B2"].value, "No")

        contradictions = workbook["Contradictions"]
        self.assertEqual(contradictions["A2"].value, "Warning")
        self.assertEqual(contradictions["A3"].value, "Critical")

    def test_default_filename(self) -> None:
        path = ReviewExporter(self.tmp.name).export(self.result)
        self.assertRegex(Path(path).name, r"^bill_review_\d{8}_\d{6}\.xlsx$")

    def test_unwritable_destination_raises(self) -> None:
        blocker = Path(self.tmp.name) / "blocker"
        blocker.write_text("not a directory")

        with self.assertRaises(ReportExportError):
            ReviewExporter().export(self.result, "review.xlsx", str(blocker / "sub"))


class TestSaveJson(unittest.TestCase):
    def test_writes_result_json(self) -> None:
        result = sample_result()
        with tempfile.TemporaryDirectory() as tmp:
            path = save_json(result, Path(tmp) / "out" / "resolution.json")

            data = json.loads(Path(path).read_text(encoding="utf-8"))

        self.assertEqual(data["overall_confidence"], result.overall_confidence)
        self.assertEqual(data["fields"]["total"]["normalized"], "120.00")


if __name__ == "__main__":
    unittest.main()
