import unittest
from datetime import date
from unittest import mock

from billnorm.resolution import (
    ContradictionSeverity,
    Evidence,
    EvidenceType,
    FieldCandidate,
    FieldResolver,
    FieldValue,
    ResolverConfig,
    ValidationType,
    consensus_boost,
    load_candidates,
)
from billnorm.resolution.resolver import apply_consensus, build_explanation
from billnorm.resolution.validators import (
    detect_field_flags,
    validate_invoice_number_format,
    validate_total_equals_subtotal_plus_tax,
    validate_vendor_name_present,
)
from billnorm.utils.exceptions import NoCandidatesError

TODAY = date(2026, 1, 15)


def candidate(name: str, raw: str, normalized=None, score: int = 90, **kwargs) -> FieldCandidate:
    return FieldCandidate(field_name=name, value_raw=raw, value_normalized=normalized, score=score, **kwargs)


def field_value(name: str, value: str, normalized=None, confidence: int = 90) -> FieldValue:
    return FieldValue(field_name=name, value=value, normalized=normalized, confidence=confidence)


def complete_bill(total: str = "110.00") -> dict:
    return {
        "vendor_name": [candidate("vendor_name", "Acme Corp")],
        "invoice_number": [candidate("invoice_number", "INV-001")],
        "invoice_date": [candidate("invoice_date", "01/10/2026", "2026-01-10")],
        "subtotal": [candidate("subtotal", "$100.00", "100.00")],
        "tax": [candidate("tax", "$10.00", "10.00")],
        "total": [candidate("total", f"${total}", total)],
    }


class TestConsensus(unittest.TestCase):
    def test_boost_is_monotonic_and_capped(self) -> None:
        self.assertEqual([consensus_boost(n) for n in (1, 2, 3, 4, 10)], [0, 10, 20, 20, 20])

    def test_shared_values_are_boosted(self) -> None:
        candidates = [
            candidate("total", "$50", "50.00", score=50),
            candidate("total", "50.00", "50.00", score=40),
            candidate("total", "500.00", "500.00", score=60),
        ]

        boosted = apply_consensus(candidates)

        self.assertEqual([c.score for c in boosted], [60, 50, 60])
        self.assertEqual(boosted[0].evidence[-1].evidence_type, EvidenceType.CONSENSUS)
        self.assertAlmostEqual(boosted[0].evidence[-1].weight, 0.4)
        self.assertIs(boosted[2], candidates[2])

    def test_boost_never_exceeds_100(self) -> None:
        boosted = apply_consensus([candidate("tax", "1", "1.00", score=95)] * 3)
        self.assertTrue(all(c.score == 100 for c in boosted))

    def test_raw_value_used_when_not_normalized(self) -> None:
        boosted = apply_consensus([candidate("vendor_name", "Acme", score=50)] * 2)
        self.assertEqual([c.score for c in boosted], [60, 60])


class TestResolveSingleField(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = FieldResolver(ResolverConfig())

    def test_tie_after_consensus_keeps_higher_original_score(self) -> None:
        candidates = [
            candidate("vendor_name", "Acme Co", score=70),
            candidate("vendor_name", "Acme Co", score=65),
            candidate("vendor_name", "Acme Corp", score=80),
        ]

        value = self.resolver.resolve_single_field("vendor_name", candidates)

        self.assertEqual(value.value, "Acme Corp")
        self.assertEqual(value.confidence, 80)
        self.assertEqual(
            [(alt.value_raw, alt.score) for alt in value.alternatives],
            [("Acme Co", 80), ("Acme Co", 75)]
        )

    def test_alternatives_are_limited(self) -> None:
        candidates = [candidate("po_number", f"PO-{i}", score=90 - i) for i in range(6)]

        value = self.resolver.resolve_single_field("po_number", candidates)

        self.assertEqual(value.value, "PO-0")
        self.assertEqual(len(value.alternatives), 3)

    def test_empty_candidates_raise(self) -> None:
        with self.assertRaises(NoCandidatesError):
            self.resolver.resolve_single_field("total", [])

    def test_explanation(self) -> None:
        ocr = Evidence(EvidenceType.OCR_CONFIDENCE, "OCR 0.97")
        label = Evidence(EvidenceType.LABEL_PROXIMITY, "Next to 'Total'")
        candidates = [
            candidate("total", "$110.00", "110.00", score=90, evidence=[ocr, label, ocr]),
            candidate("total", "110.00", "110.00", score=70, evidence=[ocr]),
        ]

        value = self.resolver.resolve_single_field("total", candidates)

        self.assertEqual(
            value.explanation,
            "Very confident based on OcrConfidence, LabelProximity, Consensus (seen 2 times)"
        )

    def test_explanation_bands(self) -> None:
        self.assertEqual(build_explanation(candidate("x", "a", score=85), []), "Confident")
        self.assertEqual(build_explanation(candidate("x", "a", score=70), []), "Moderately confident")
        self.assertEqual(build_explanation(candidate("x", "a", score=69), []), "Low confidence")


class TestFieldFlags(unittest.TestCase):
    def test_low_confidence(self) -> None:
        self.assertEqual(detect_field_flags("vendor_name", candidate("vendor_name", "Acme", score=69)),
                         ["low_confidence"])
        self.assertEqual(detect_field_flags("vendor_name", candidate("vendor_name", "Acme", score=70)), [])

    def test_amount_flags(self) -> None:
        self.assertEqual(detect_field_flags("total", candidate("total", "0", "0.00")), ["invalid_amount"])
        self.assertEqual(detect_field_flags("total_amount", candidate("total_amount", "2M", "2000000.00")),
                         ["unusually_large_amount"])
        self.assertEqual(detect_field_flags("total", candidate("total", "n/a", "n/a")), [])

    @mock.patch("billnorm.resolution.validators._today", return_value=TODAY)
    def test_future_date_flag(self, _today) -> None:
        self.assertEqual(detect_field_flags("due_date", candidate("due_date", "x", "2026-02-01")),
                         ["future_date"])
        self.assertEqual(detect_field_flags("due_date", candidate("due_date", "x", "2026-01-15")), [])
        self.assertEqual(detect_field_flags("due_date", candidate("due_date", "x", "01/02/2026")), [])


class TestCrossFieldValidations(unittest.TestCase):
    def _totals(self, total: str) -> dict:
        return {
            "total": field_value("total", total, total),
            "subtotal": field_value("subtotal", "100.00", "100.00"),
            "tax": field_value("tax", "10.00", "10.00"),
        }

    def test_total_matches(self) -> None:
        validation = validate_total_equals_subtotal_plus_tax(self._totals("110.00"))
        self.assertTrue(validation.passed)
        self.assertEqual(validation.penalty, 0)

    def test_total_mismatch(self) -> None:
        validation = validate_total_equals_subtotal_plus_tax(self._totals("120.00"))
        self.assertFalse(validation.passed)
        self.assertEqual(validation.penalty, 20)

    def test_total_within_tolerance(self) -> None:
        self.assertTrue(validate_total_equals_subtotal_plus_tax(self._totals("110.02")).passed)

    def test_total_missing_fields(self) -> None:
        fields = self._totals("110.00")
        del fields["tax"]

        validation = validate_total_equals_subtotal_plus_tax(fields)

        self.assertFalse(validation.passed)
        self.assertEqual(validation.penalty, 10)

    def test_invoice_number_format(self) -> None:
        self.assertTrue(validate_invoice_number_format(
            {"invoice_number": field_value("invoice_number", "INV-001")}).passed)

        short = validate_invoice_number_format({"invoice_number": field_value("invoice_number", "#1")})
        self.assertEqual(short.penalty, 15)

        symbols = validate_invoice_number_format({"invoice_number": field_value("invoice_number", "---")})
        self.assertEqual(symbols.penalty, 15)

        self.assertEqual(validate_invoice_number_format({}).penalty, 25)

    def test_invoice_number_length_counts_characters(self) -> None:
        two_chars = validate_invoice_number_format({"invoice_number": field_value("invoice_number", "№1")})
        self.assertEqual(two_chars.penalty, 15)
        self.assertTrue(validate_invoice_number_format(
            {"invoice_number": field_value("invoice_number", "№12")}).passed)

    def test_vendor_name(self) -> None:
        self.assertTrue(validate_vendor_name_present({"vendor_name": field_value("vendor_name", "Ab")}).passed)
        self.assertEqual(validate_vendor_name_present({"vendor_name": field_value("vendor_name", " A ")}).penalty, 20)
        self.assertEqual(validate_vendor_name_present({}).penalty, 20)


@mock.patch("billnorm.resolution.validators._today", return_value=TODAY)
class TestResolveFields(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = FieldResolver(ResolverConfig())

    def test_clean_bill_passes_everything(self, _today) -> None:
        result = self.resolver.resolve_fields(complete_bill())

        self.assertEqual(len(result.fields), 6)
        self.assertTrue(all(v.passed for v in result.cross_field_validations))
        self.assertEqual(
            [v.validation_type for v in result.cross_field_validations],
            [
                ValidationType.TOTAL_EQUALS_SUBTOTAL_PLUS_TAX,
                ValidationType.DATE_NOT_IN_FUTURE,
                ValidationType.INVOICE_NUMBER_FORMAT,
                ValidationType.VENDOR_NAME_PRESENT,
            ]
        )
        self.assertEqual(result.contradictions, [])
        self.assertEqual(result.overall_confidence, 90)

    def test_total_mismatch_penalizes_the_triple(self, _today) -> None:
        result = self.resolver.resolve_fields(complete_bill(total="120.00"))

        for name in ("total", "subtotal", "tax"):
            self.assertEqual(result.fields[name].confidence, 84)
            self.assertIn("cross_validation_failed", result.fields[name].flags)
        self.assertEqual(result.fields["vendor_name"].confidence, 90)

        self.assertEqual(len(result.contradictions), 1)
        contradiction = result.contradictions[0]
        self.assertEqual(contradiction.severity, ContradictionSeverity.WARNING)
        self.assertEqual(contradiction.fields, ["total", "subtotal", "tax"])

        self.assertEqual(result.overall_confidence, (84 * 3 + 90 * 3) // 6)

    def test_future_invoice_date(self, _today) -> None:
        bill = complete_bill()
        bill["invoice_date"] = [candidate("invoice_date", "02/01/2026", "2026-02-01")]

        result = self.resolver.resolve_fields(bill)

        invoice_date = result.fields["invoice_date"]
        self.assertIn("future_date", invoice_date.flags)
        self.assertIn("validation_failed", invoice_date.flags)
        self.assertEqual(invoice_date.confidence, 60)

        severities = [(c.fields, c.severity) for c in result.contradictions]
        self.assertEqual(severities, [
            (["invoice_date"], ContradictionSeverity.CRITICAL),
            (["invoice_date"], ContradictionSeverity.CRITICAL),
        ])
        self.assertTrue(result.has_critical_contradictions)

    def test_missing_invoice_number_is_critical(self, _today) -> None:
        result = self.resolver.resolve_fields({"vendor_name": [candidate("vendor_name", "Acme Corp")]})

        failed = {v.validation_type: v.penalty for v in result.failed_validations}
        self.assertEqual(failed, {
            ValidationType.TOTAL_EQUALS_SUBTOTAL_PLUS_TAX: 10,
            ValidationType.INVOICE_NUMBER_FORMAT: 25,
        })
        self.assertEqual(len(result.contradictions), 1)
        self.assertEqual(result.contradictions[0].severity, ContradictionSeverity.CRITICAL)
        self.assertEqual(result.fields["vendor_name"].confidence, 90)

    def test_penalty_never_goes_below_zero(self, _today) -> None:
        result = self.resolver.resolve_fields({"vendor_name": [candidate("vendor_name", "A", score=10)]})
        self.assertEqual(result.fields["vendor_name"].confidence, 0)

    def test_overall_confidence_is_floor_of_mean(self, _today) -> None:
        resolver = FieldResolver(ResolverConfig(cross_validation_enabled=False))
        result = resolver.resolve_fields({
            "po_number": [candidate("po_number", "PO-1", score=90)],
            "reference": [candidate("reference", "R-1", score=80)],
        })
        self.assertEqual(result.overall_confidence, 85)
        self.assertEqual(result.cross_field_validations, [])

        result = resolver.resolve_fields({
            "a": [candidate("a", "x", score=90)],
            "b": [candidate("b", "y", score=81)],
        })
        self.assertEqual(result.overall_confidence, 85)

    def test_flag_contradictions_without_cross_validation(self, _today) -> None:
        resolver = FieldResolver(ResolverConfig(cross_validation_enabled=False))
        result = resolver.resolve_fields({
            "total": [candidate("total", "-5.00", "-5.00")],
            "invoice_date": [candidate("invoice_date", "02/01/2026", "2026-02-01")],
        })

        self.assertEqual(result.cross_field_validations, [])
        self.assertEqual(result.fields["total"].flags, ["invalid_amount"])
        self.assertEqual(result.fields["total"].confidence, 90)
        self.assertEqual(
            [(c.fields, c.severity) for c in result.contradictions],
            [
                (["total"], ContradictionSeverity.CRITICAL),
                (["invoice_date"], ContradictionSeverity.CRITICAL),
            ]
        )

    def test_empty_input(self, _today) -> None:
        result = self.resolver.resolve_fields({"total": []})

        self.assertEqual(result.fields, {})
        self.assertEqual(result.overall_confidence, 0)
        self.assertEqual(len(result.cross_field_validations), 4)

    def test_resolution_is_repeatable(self, _today) -> None:
        bill = complete_bill(total="120.00")
        bill["vendor_name"] = [
            candidate("vendor_name", "Acme Co", score=70),
            candidate("vendor_name", "Acme Co", score=65),
            candidate("vendor_name", "Acme Corp", score=80),
        ]

        first = self.resolver.resolve_fields(bill).to_dict()
        second = self.resolver.resolve_fields(bill).to_dict()
        first.pop("processing_time_ms")
        second.pop("processing_time_ms")

        self.assertEqual(first, second)

    def test_input_is_not_modified(self, _today) -> None:
        bill = complete_bill(total="120.00")
        bill["total"].append(candidate("total", "120", "120.00", score=60))
        before = {name: [c.to_dict() for c in items] for name, items in bill.items()}

        self.resolver.resolve_fields(bill)

        after = {name: [c.to_dict() for c in items] for name, items in bill.items()}
        self.assertEqual(before, after)

    def test_result_serializes(self, _today) -> None:
        result = self.resolver.resolve_fields(complete_bill())
        data = result.to_dict()

        self.assertEqual(list(data["fields"]), list(complete_bill()))
        self.assertEqual(data["cross_field_validations"][0]["validation_type"], "TotalEqualsSubtotalPlusTax")
        self.assertIn('"overall_confidence": 90', result.to_json())


class TestCandidateLoading(unittest.TestCase):
    def test_load_candidates(self) -> None:
        loaded = load_candidates({
            "total": [{
                "value_raw": "$110.00",
                "value_normalized": "110.00",
                "score": 92,
                "evidence": [{"evidence_type": "PatternMatch", "description": "currency", "weight": 0.5}],
                "sources": ["ocr-1"],
                "bbox": {"x": 10, "y": 20, "width": 30, "height": 40},
            }]
        })

        total = loaded["total"][0]
        self.assertEqual(total.field_name, "total")
        self.assertEqual(total.evidence[0].evidence_type, EvidenceType.PATTERN_MATCH)
        self.assertEqual(total.bbox.width, 30)
        self.assertEqual(total.to_dict()["sources"], ["ocr-1"])

    def test_out_of_range_score_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            FieldCandidate.from_dict({"value_raw": "x", "score": 101}, field_name="total")


if __name__ == "__main__":
    unittest.main()
