"""
Candidate Normalizers Module.

This module fills in the canonical form of candidate values that the
extraction step left unnormalized:
    - Date formats (to YYYY-MM-DD)
    - Currency/amount values (to "1234.56")

The resolver compares and validates normalized values only, so running
CandidateNormalizer first lets raw-only candidates take part in
consensus and cross-field checks.
"""

import re
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from dateutil import parser as date_parser

from config import get_config
from billnorm.utils.logger import get_logger
from .candidates import FieldCandidate
from .validators import is_amount_field, is_date_field

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_DATE_INPUT_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d.%m.%Y",
]


class DateNormalizer:
    """
    Normalizes date strings to a standard format.

    Explicit formats are tried first, in order; dateutil's parser is the
    fallback for anything else.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.normalize("Invoice date: January 15th, 2026")
        '2026-01-15'
    """

    PREFIXES = ['invoice date:', 'due date:', 'dated:', 'date:']

    def __init__(
        self,
        output_format: Optional[str] = None,
        input_formats: Optional[List[str]] = None
    ) -> None:
        self.output_format = output_format or get_config(
            "resolution.normalization.date_output_format", "%Y-%m-%d"
        )
        self.input_formats = input_formats or get_config(
            "resolution.normalization.date_input_formats", DEFAULT_DATE_INPUT_FORMATS
        )

    def normalize(self, date_str: Optional[str]) -> Optional[str]:
        """
        Normalize a date string to the configured output format.

        Args:
            date_str: Input date string in any recognized format.

        Returns:
            Normalized date string, or None if parsing fails.
        """
        if not date_str:
            return None

        cleaned = self._clean_date_string(date_str)
        if not cleaned:
            return None

        parsed = self._try_explicit_formats(cleaned)
        if parsed is None:
            parsed = self._try_dateutil_parser(cleaned)

        if parsed is None:
            logger.debug(f"Could not parse date: {date_str}")
            return None

        return parsed.strftime(self.output_format)

    def _clean_date_string(self, date_str: str) -> str:
        date_str = ' '.join(date_str.split())

        lowered = date_str.lower()
        for prefix in self.PREFIXES:
            if lowered.startswith(prefix):
                date_str = date_str[len(prefix):].strip()
                break

        # Remove ordinal suffixes (1st, 2nd, 3rd, 4th, etc.)
        date_str = re.sub(r'(\d+)(st|nd|rd|th)\b', r'\1', date_str, flags=re.IGNORECASE)

        return date_str.strip()

    def _try_explicit_formats(self, date_str: str) -> Optional[datetime]:
        for fmt in self.input_formats:
            try:
                return datetime.strptime(date_str, fmt)
            except ValueError:
                continue
        return None

    def _try_dateutil_parser(self, date_str: str) -> Optional[datetime]:
        try:
            return date_parser.parse(date_str, dayfirst=False, fuzzy=True)
        except (ValueError, OverflowError):
            return None


class AmountNormalizer:
    """
    Normalizes currency/amount strings to a plain two-decimal number.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.normalize("$1,234.56")
        '1234.56'
        >>> normalizer.normalize("€ 1.234,56")
        '1234.56'
    """

    CURRENCY_SYMBOLS = ['$', '€', '£', '¥', '₹']
    CURRENCY_CODES = ['USD', 'EUR', 'GBP', 'JPY', 'INR', 'CAD', 'AUD']
    PREFIXES = ['total amount:', 'total:', 'amount:', 'due:', 'balance:']

    def normalize(self, amount_str: Optional[str]) -> Optional[str]:
        """
        Normalize an amount string.

        Args:
            amount_str: Input amount string (e.g., "$1,234.56").

        Returns:
            Normalized amount string (e.g., "1234.56") or None.
        """
        if not amount_str:
            return None

        cleaned = self._clean_amount_string(amount_str)
        if not cleaned:
            return None

        cleaned = self._handle_european_format(cleaned)
        cleaned = cleaned.replace(',', '')

        try:
            value = float(cleaned)
        except ValueError:
            logger.debug(f"Could not parse amount: {amount_str}")
            return None

        return f"{value:.2f}"

    def _clean_amount_string(self, amount_str: str) -> str:
        amount_str = ' '.join(amount_str.split())

        lowered = amount_str.lower()
        for prefix in self.PREFIXES:
            if lowered.startswith(prefix):
                amount_str = amount_str[len(prefix):]
                break

        for symbol in self.CURRENCY_SYMBOLS:
            amount_str = amount_str.replace(symbol, '')

        for code in self.CURRENCY_CODES:
            amount_str = re.sub(rf'\b{code}\b', '', amount_str, flags=re.IGNORECASE)

        # Keep only digits, comma, dot, and minus
        return re.sub(r'[^\d,.\-]', '', amount_str).strip()

    def _handle_european_format(self, amount_str: str) -> str:
        """Convert "1.234,56" (comma decimal) to "1234.56"."""
        if amount_str.count(',') != 1:
            return amount_str

        comma_pos = amount_str.rfind(',')
        if comma_pos < amount_str.rfind('.'):
            return amount_str

        after_comma = amount_str[comma_pos + 1:]
        if len(after_comma) <= 2 and after_comma.isdigit():
            amount_str = amount_str.replace('.', '').replace(',', '.')

        return amount_str


class CandidateNormalizer:
    """
    Fills missing value_normalized on candidates by field kind.

    Date-like fields ("date" in the name) go through DateNormalizer,
    amount-like fields ("total", "amount", "subtotal", "tax") through
    AmountNormalizer. Candidates that already carry a normalized value,
    or whose field is neither kind, are passed through unchanged.
    Input candidates are never modified; normalized ones are copies.

    Example:
        >>> normalized = CandidateNormalizer().normalize_candidates(candidates_by_field)
        >>> result = FieldResolver().resolve_fields(normalized)
    """

    AMOUNT_FIELDS = ("subtotal", "tax")

    def __init__(
        self,
        date_normalizer: Optional[DateNormalizer] = None,
        amount_normalizer: Optional[AmountNormalizer] = None
    ) -> None:
        self.date_normalizer = date_normalizer or DateNormalizer()
        self.amount_normalizer = amount_normalizer or AmountNormalizer()

    def _is_amount(self, field_name: str) -> bool:
        return is_amount_field(field_name) or field_name in self.AMOUNT_FIELDS

    def normalize_candidate(self, candidate: FieldCandidate) -> FieldCandidate:
        if candidate.value_normalized is not None:
            return candidate

        if is_date_field(candidate.field_name):
            normalized = self.date_normalizer.normalize(candidate.value_raw)
        elif self._is_amount(candidate.field_name):
            normalized = self.amount_normalizer.normalize(candidate.value_raw)
        else:
            return candidate

        if normalized is None:
            return candidate
        return replace(candidate, value_normalized=normalized)

    def normalize_candidates(
        self,
        candidates_by_field: Dict[str, List[FieldCandidate]]
    ) -> Dict[str, List[FieldCandidate]]:
        """
        Normalize every candidate of every field.

        Args:
            candidates_by_field: Candidate lists keyed by field name.

        Returns:
            New mapping with the same keys and order.
        """
        normalized = {}
        filled = 0

        for field_name, candidates in candidates_by_field.items():
            normalized[field_name] = []
            for candidate in candidates:
                result = self.normalize_candidate(candidate)
                if result is not candidate:
                    filled += 1
                normalized[field_name].append(result)

        logger.debug(f"Filled normalized values for {filled} candidates")
        return normalized
