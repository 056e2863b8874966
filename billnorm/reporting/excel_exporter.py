"""
Review Workbook Exporter Module.

This module writes a ResolutionResult to an Excel workbook for human
review. Uses openpyxl for modern Excel format support.

Sheets:
    - Resolved Fields: one row per field with flags and explanation
    - Validations: every cross-field check and its penalty
    - Contradictions: conflicts the reviewer must resolve
"""

from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config import get_config
from billnorm.resolution.results import ResolutionResult
from billnorm.utils.exceptions import ReportExportError
from billnorm.utils.helpers import ensure_directory, generate_timestamp
from billnorm.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)
FLAGGED_FILL = PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid")
MAX_COLUMN_WIDTH = 60


class ReviewExporter:
    """
    Exports resolution results to Excel format.

    Attributes:
        output_dir: Default directory for output files

    Example:
        >>> exporter = ReviewExporter()
        >>> filepath = exporter.export(result, "bill_review.xlsx")
        >>> print(f"Saved to: {filepath}")
    """

    FIELD_COLUMNS = [
        'Field', 'Value', 'Normalized', 'Confidence',
        'Flags', 'Explanation', 'Alternatives', 'Sources'
    ]
    VALIDATION_COLUMNS = ['Validation', 'Passed', 'Penalty', 'Message']
    CONTRADICTION_COLUMNS = ['Severity', 'Fields', 'Description']

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        logger.debug(f"ReviewExporter initialized (output_dir: {self.output_dir})")

    def export(
        self,
        result: ResolutionResult,
        filename: Optional[str] = None,
        output_dir: Optional[str] = None
    ) -> str:
        """
        Export a resolution result to an Excel file.

        Args:
            result: Resolution result to export.
            filename: Output filename. If None, auto-generated.
            output_dir: Output directory. If None, uses configured dir.

        Returns:
            Path to the created Excel file.

        Raises:
            ReportExportError: If the workbook cannot be written.
        """
        out_dir = Path(output_dir) if output_dir else self.output_dir
        filepath = out_dir / (filename or self.get_default_filename())

        try:
            ensure_directory(out_dir)

            workbook = Workbook()
            self._create_fields_sheet(workbook, result)
            self._create_validations_sheet(workbook, result)
            self._create_contradictions_sheet(workbook, result)
            workbook.save(filepath)

        except OSError as e:
            logger.error(f"Excel export failed: {e}")
            raise ReportExportError(str(filepath), str(e))

        logger.info(
            f"Review workbook saved: {filepath} "
            f"({len(result.fields)} fields, {len(result.contradictions)} contradictions)"
        )
        return str(filepath)

    def _create_fields_sheet(self, workbook: Workbook, result: ResolutionResult) -> None:
        sheet = workbook.active
        sheet.title = "Resolved Fields"

        rows = []
        for name, value in result.fields.items():
            alternatives = "; ".join(
                f"{alt.value_raw} ({alt.score})" for alt in value.alternatives
            )
            rows.append((
                name,
                value.value,
                value.normalized or '',
                value.confidence,
                ", ".join(value.flags),
                value.explanation,
                alternatives,
                ", ".join(value.chosen_sources),
            ))

        self._write_table(sheet, self.FIELD_COLUMNS, rows, "4472C4")

        # Highlight rows a reviewer should check first
        for row_num, value in enumerate(result.fields.values(), 2):
            if value.flags:
                for col in range(1, len(self.FIELD_COLUMNS) + 1):
                    sheet.cell(row=row_num, column=col).fill = FLAGGED_FILL

        summary_row = len(rows) + 3
        sheet.cell(row=summary_row, column=1, value="Overall Confidence").font = Font(bold=True)
        sheet.cell(row=summary_row, column=2, value=result.overall_confidence)

    def _create_validations_sheet(self, workbook: Workbook, result: ResolutionResult) -> None:
        sheet = workbook.create_sheet(title="Validations")
        rows = [
            (v.validation_type.value, "Yes" if v.passed else "No", v.penalty, v.message)
            for v in result.cross_field_validations
        ]
        self._write_table(sheet, self.VALIDATION_COLUMNS, rows, "548235")

    def _create_contradictions_sheet(self, workbook: Workbook, result: ResolutionResult) -> None:
        sheet = workbook.create_sheet(title="Contradictions")
        rows = [
            (c.severity.value, ", ".join(c.fields), c.description)
            for c in result.contradictions
        ]
        self._write_table(sheet, self.CONTRADICTION_COLUMNS, rows, "C65911")

    def _write_table(
        self,
        sheet,
        headers: List[str],
        rows: Sequence[Tuple[Any, ...]],
        header_color: str
    ) -> None:
        """Write a bordered table with a colored, frozen header row."""
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color=header_color, end_color=header_color, fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")

        for col, header in enumerate(headers, 1):
            cell = sheet.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = THIN_BORDER

        for row_num, row in enumerate(rows, 2):
            for col, value in enumerate(row, 1):
                cell = sheet.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER

        # Adjust column widths
        for col, header in enumerate(headers, 1):
            max_length = len(header)
            for row in rows:
                if row[col - 1] is not None:
                    max_length = max(max_length, len(str(row[col - 1])))
            sheet.column_dimensions[get_column_letter(col)].width = min(max_length + 2, MAX_COLUMN_WIDTH)

        sheet.freeze_panes = 'A2'

    def get_default_filename(self) -> str:
        """
        Generate a default filename with timestamp.

        Returns:
            Default filename string.
        """
        pattern = get_config(
            "output.excel.filename_pattern",
            "bill_review_{timestamp}.xlsx"
        )
        return pattern.format(timestamp=generate_timestamp())
