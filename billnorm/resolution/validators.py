"""
Field Validators Module.

This module provides the data-quality checks run after field values
are resolved:
    - Per-field flags (low confidence, future dates, implausible amounts)
    - Cross-field validations (total arithmetic, invoice number, vendor)
    - Contradiction detection from failed checks and critical flags

None of these raise: a failed check is reported as data on the
ResolutionResult for a reviewer to act on.
"""

from datetime import date
from typing import Dict, List, Mapping, Optional

from billnorm.utils.helpers import parse_amount, parse_iso_date
from billnorm.utils.logger import get_logger
from .candidates import FieldCandidate
from .results import (
    Contradiction,
    ContradictionSeverity,
    CrossFieldValidation,
    FieldValue,
    ValidationType
)

# Initialize module logger
logger = get_logger(__name__)

# Flag names
FLAG_LOW_CONFIDENCE = "low_confidence"
FLAG_FUTURE_DATE = "future_date"
FLAG_INVALID_AMOUNT = "invalid_amount"
FLAG_LARGE_AMOUNT = "unusually_large_amount"
FLAG_CROSS_VALIDATION_FAILED = "cross_validation_failed"
FLAG_VALIDATION_FAILED = "validation_failed"

# Fields each validation implicates
TOTAL_FIELDS = ("total", "subtotal", "tax")
VALIDATION_FIELDS = {
    ValidationType.TOTAL_EQUALS_SUBTOTAL_PLUS_TAX: list(TOTAL_FIELDS),
    ValidationType.DATE_NOT_IN_FUTURE: ["invoice_date"],
    ValidationType.INVOICE_NUMBER_FORMAT: ["invoice_number"],
    ValidationType.VENDOR_NAME_PRESENT: ["vendor_name"],
}

# Failed validations at or above these penalties become contradictions
CONTRADICTION_PENALTY = 20
CRITICAL_PENALTY = 25

INVOICE_NUMBER_MIN_LENGTH = 3
INVOICE_NUMBER_MAX_LENGTH = 50
VENDOR_NAME_MIN_LENGTH = 2


def _today() -> date:
    """Local calendar date; patched in tests."""
    return date.today()


def is_date_field(field_name: str) -> bool:
    return "date" in field_name


def is_amount_field(field_name: str) -> bool:
    return "total" in field_name or "amount" in field_name


def detect_field_flags(
    field_name: str,
    candidate: FieldCandidate,
    low_confidence_threshold: int = 70,
    large_amount_threshold: float = 1_000_000.0
) -> List[str]:
    """
    Detect data-quality flags for a winning candidate.

    Args:
        field_name: Name of the field being resolved.
        candidate: Winning candidate (post consensus boost).
        low_confidence_threshold: Scores below this are flagged.
        large_amount_threshold: Amounts above this are flagged.

    Returns:
        Flag names, in a fixed order.
    """
    flags = []

    if candidate.score < low_confidence_threshold:
        flags.append(FLAG_LOW_CONFIDENCE)

    if is_date_field(field_name):
        parsed = parse_iso_date(candidate.value_normalized)
        if parsed is not None and parsed > _today():
            flags.append(FLAG_FUTURE_DATE)

    if is_amount_field(field_name):
        amount = parse_amount(candidate.value_normalized)
        if amount is not None:
            if amount <= 0.0:
                flags.append(FLAG_INVALID_AMOUNT)
            if amount > large_amount_threshold:
                flags.append(FLAG_LARGE_AMOUNT)

    return flags


def _field_amount(fields: Mapping[str, FieldValue], name: str) -> Optional[float]:
    value = fields.get(name)
    if value is None:
        return None
    return parse_amount(value.normalized)


def validate_total_equals_subtotal_plus_tax(
    fields: Mapping[str, FieldValue],
    tolerance: float = 0.02
) -> CrossFieldValidation:
    """
    Check total == subtotal + tax within tolerance.

    Fails with penalty 20 on a mismatch and penalty 10 when any of the
    three amounts is missing or unparseable.

    Example:
        >>> validate_total_equals_subtotal_plus_tax(fields).passed  # 110 = 100 + 10
        True
    """
    total = _field_amount(fields, "total")
    subtotal = _field_amount(fields, "subtotal")
    tax = _field_amount(fields, "tax")

    if total is None or subtotal is None or tax is None:
        return CrossFieldValidation(
            ValidationType.TOTAL_EQUALS_SUBTOTAL_PLUS_TAX,
            passed=False,
            message="Missing required fields for validation",
            penalty=10,
        )

    diff = abs(total - (subtotal + tax))
    if diff <= tolerance:
        return CrossFieldValidation(
            ValidationType.TOTAL_EQUALS_SUBTOTAL_PLUS_TAX,
            passed=True,
            message=f"Total ${total:.2f} = Subtotal ${subtotal:.2f} + Tax ${tax:.2f}",
        )

    return CrossFieldValidation(
        ValidationType.TOTAL_EQUALS_SUBTOTAL_PLUS_TAX,
        passed=False,
        message=(
            f"Total ${total:.2f} does not equal Subtotal ${subtotal:.2f} + "
            f"Tax ${tax:.2f} (diff: ${diff:.2f})"
        ),
        penalty=20,
    )


def validate_date_not_in_future(fields: Mapping[str, FieldValue]) -> CrossFieldValidation:
    """Check invoice_date is not after today; passes when there is no usable date."""
    invoice_date = fields.get("invoice_date")
    parsed = parse_iso_date(invoice_date.normalized) if invoice_date else None

    if parsed is None:
        return CrossFieldValidation(
            ValidationType.DATE_NOT_IN_FUTURE,
            passed=True,
            message="No date field to validate",
        )

    if parsed <= _today():
        return CrossFieldValidation(
            ValidationType.DATE_NOT_IN_FUTURE,
            passed=True,
            message=f"Date {invoice_date.normalized} is valid",
        )

    return CrossFieldValidation(
        ValidationType.DATE_NOT_IN_FUTURE,
        passed=False,
        message=f"Date {invoice_date.normalized} is in the future",
        penalty=30,
    )


def validate_invoice_number_format(fields: Mapping[str, FieldValue]) -> CrossFieldValidation:
    """Check invoice_number has alphanumeric content and 3-50 characters (code points, not bytes)."""
    invoice_number = fields.get("invoice_number")
    if invoice_number is None:
        return CrossFieldValidation(
            ValidationType.INVOICE_NUMBER_FORMAT,
            passed=False,
            message="Invoice number missing",
            penalty=25,
        )

    value = invoice_number.value
    passed = (
        any(ch.isalnum() for ch in value)
        and INVOICE_NUMBER_MIN_LENGTH <= len(value) <= INVOICE_NUMBER_MAX_LENGTH
    )

    if passed:
        return CrossFieldValidation(
            ValidationType.INVOICE_NUMBER_FORMAT,
            passed=True,
            message=f"Invoice number '{value}' has valid format",
        )

    return CrossFieldValidation(
        ValidationType.INVOICE_NUMBER_FORMAT,
        passed=False,
        message=f"Invoice number '{value}' has invalid format",
        penalty=15,
    )


def validate_vendor_name_present(fields: Mapping[str, FieldValue]) -> CrossFieldValidation:
    vendor_name = fields.get("vendor_name")
    if vendor_name is None:
        return CrossFieldValidation(
            ValidationType.VENDOR_NAME_PRESENT,
            passed=False,
            message="Vendor name missing",
            penalty=20,
        )

    value = vendor_name.value
    if len(value.strip()) >= VENDOR_NAME_MIN_LENGTH:
        return CrossFieldValidation(
            ValidationType.VENDOR_NAME_PRESENT,
            passed=True,
            message=f"Vendor name '{value}' is present",
        )

    return CrossFieldValidation(
        ValidationType.VENDOR_NAME_PRESENT,
        passed=False,
        message="Vendor name is empty or too short",
        penalty=20,
    )


def run_cross_field_validations(
    fields: Mapping[str, FieldValue],
    total_tolerance: float = 0.02
) -> List[CrossFieldValidation]:
    """
    Run every cross-field check, in a fixed order.

    All four checks always run, whether or not their fields were resolved.
    """
    validations = [
        validate_total_equals_subtotal_plus_tax(fields, total_tolerance),
        validate_date_not_in_future(fields),
        validate_invoice_number_format(fields),
        validate_vendor_name_present(fields),
    ]

    for validation in validations:
        if not validation.passed:
            logger.warning(
                f"Validation {validation.validation_type.value} failed "
                f"(penalty {validation.penalty}): {validation.message}"
            )

    return validations


def detect_contradictions(
    fields: Mapping[str, FieldValue],
    validations: List[CrossFieldValidation]
) -> List[Contradiction]:
    """
    Collect conflicts a reviewer must look at.

    A failed validation with penalty >= 20 is a contradiction (Critical
    at >= 25, otherwise Warning). Every field flagged future_date or
    invalid_amount is a Critical contradiction of its own.
    """
    contradictions = []

    for validation in validations:
        if not validation.passed and validation.penalty >= CONTRADICTION_PENALTY:
            severity = (
                ContradictionSeverity.CRITICAL
                if validation.penalty >= CRITICAL_PENALTY
                else ContradictionSeverity.WARNING
            )
            contradictions.append(Contradiction(
                fields=list(VALIDATION_FIELDS[validation.validation_type]),
                description=validation.message,
                severity=severity,
            ))

    for field_name, value in fields.items():
        if FLAG_FUTURE_DATE in value.flags:
            contradictions.append(Contradiction(
                fields=[field_name],
                description=f"{field_name} is in the future",
                severity=ContradictionSeverity.CRITICAL,
            ))
        if FLAG_INVALID_AMOUNT in value.flags:
            contradictions.append(Contradiction(
                fields=[field_name],
                description=f"{field_name} has invalid amount",
                severity=ContradictionSeverity.CRITICAL,
            ))

    return contradictions


def apply_validation_penalties(
    fields: Dict[str, FieldValue],
    validations: List[CrossFieldValidation]
) -> None:
    """
    Lower the confidence of fields implicated by failed validations.

    The total/subtotal/tax check spreads its penalty over the three
    fields (penalty // 3 each). Confidence never drops below 0.
    """
    for validation in validations:
        if validation.passed:
            continue

        if validation.validation_type is ValidationType.TOTAL_EQUALS_SUBTOTAL_PLUS_TAX:
            share = validation.penalty // 3
            flag = FLAG_CROSS_VALIDATION_FAILED
        else:
            share = validation.penalty
            flag = FLAG_VALIDATION_FAILED

        for field_name in VALIDATION_FIELDS[validation.validation_type]:
            value = fields.get(field_name)
            if value is None:
                continue
            value.confidence = max(value.confidence - share, 0)
            value.flags.append(flag)
