"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from pathlib import Path
from typing import Any, Optional, Sequence
import logging

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig
from ..models.transaction import (
    GroupMatch,
    LedgerEntry,
    PairMatch,
    ReconciliationReport,
    Transaction,
)
from ..store import ReconciliationStore
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
VARIANCE_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
MONEY_FORMAT = "#,##0.00"

PAIR_HEADERS = [
    "Reconciliation ID",
    "Bank Date",
    "Bank Description",
    "Bank Amount",
    "Ledger Date",
    "Ledger Description",
    "Ledger Value",
    "Account",
    "Score",
    "Value Difference",
    "Date Difference (Days)",
]


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config or ReconConfig()
        self.sheet_names = self.config.output.sheets

    def generate_report(
        self,
        report: ReconciliationReport,
        store: ReconciliationStore,
        output_path: Path,
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            report: Report of the run to render
            store: Session the run was made against, for record details
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be saved
        """
        logger.info(f"Generating Excel report: {output_path}")

        transactions = {t.id: t for t in store.transactions}
        entries = {e.id: e for e in store.ledger_entries}

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        self._create_summary_sheet(wb, report, store)
        self._create_pair_sheet(wb, self.sheet_names.exact, report.exact, transactions, entries)
        self._create_pair_sheet(
            wb, self.sheet_names.tolerance, report.tolerance, transactions, entries
        )
        self._create_pair_sheet(wb, self.sheet_names.fuzzy, report.fuzzy, transactions, entries)
        self._create_group_sheet(wb, report.group, transactions, entries)
        self._create_pending_bank_sheet(
            wb, [t for t in store.transactions if not t.is_matched]
        )
        self._create_pending_ledger_sheet(
            wb, [e for e in store.ledger_entries if not e.matched]
        )

        # Ensure output directory exists
        output_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Cannot save report {output_path}: {e}") from e
        logger.info(f"Report saved: {output_path}")

        return output_path

    def _create_summary_sheet(
        self, wb: Workbook, report: ReconciliationReport, store: ReconciliationStore
    ) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_names.summary)
        totals = report.totals

        # Title
        ws["A1"] = "Bank Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        sections: list[tuple[str, list[tuple[str, Any]]]] = [
            (
                "Session",
                [
                    ("Company:", store.company),
                    ("Bank:", store.bank),
                    ("Currency:", store.currency),
                    ("Generated At:", report.generated_at.strftime("%Y-%m-%d %H:%M:%S")),
                    ("Tolerance (days):", report.tolerance_days),
                    ("Tolerance (value):", float(report.tolerance_value)),
                ],
            ),
            (
                "Record Counts",
                [
                    ("Bank Transactions:", totals.bank_count),
                    ("Ledger Entries:", totals.ledger_count),
                    ("Matched Bank:", totals.matched_count),
                    ("Pending Bank:", totals.pending_count),
                    ("Matched Ledger:", totals.ledger_matched_count),
                    ("Pending Ledger:", totals.ledger_pending_count),
                ],
            ),
            (
                "Match Rates",
                [
                    ("Bank Match Rate:", f"{totals.match_rate_bank:.1f}%"),
                    ("Ledger Match Rate:", f"{totals.match_rate_ledger:.1f}%"),
                ],
            ),
            (
                "Matches by Pass",
                [(name, count) for name, count in report.matches_by_pass.items()],
            ),
        ]

        row = 3
        for title, items in sections:
            ws[f"A{row}"] = title
            ws[f"A{row}"].font = Font(bold=True)
            row += 1
            for label, value in items:
                ws[f"A{row}"] = label
                ws[f"B{row}"] = value
                ws[f"B{row}"].alignment = Alignment(horizontal="left")
                row += 1
            row += 1

        if store.notes:
            ws[f"A{row}"] = "Notes"
            ws[f"A{row}"].font = Font(bold=True)
            ws[f"A{row + 1}"] = store.notes

        # Adjust column widths
        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_pair_sheet(
        self,
        wb: Workbook,
        sheet_name: str,
        matches: Sequence[PairMatch],
        transactions: dict[str, Transaction],
        entries: dict[str, LedgerEntry],
    ) -> None:
        """Create a sheet listing the one-to-one matches of one pass."""
        ws = wb.create_sheet(sheet_name)
        self._write_headers(ws, PAIR_HEADERS)

        for row_num, match in enumerate(matches, start=2):
            txn = transactions.get(match.transaction_id)
            entry = entries.get(match.ledger_id)

            row_data = [
                match.reconciliation_id,
                txn.date if txn else "",
                txn.description if txn else "",
                float(txn.amount) if txn else "",
                entry.date if entry and entry.date else "",
                entry.description if entry else "",
                float(entry.value) if entry else "",
                txn.account if txn else "",
                round(match.score, 4),
                float(match.value_diff),
                match.date_diff_days if match.date_diff_days is not None else "",
            ]

            has_variance = bool(match.value_diff) or bool(match.date_diff_days)
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                if col in (4, 7, 10):
                    cell.number_format = MONEY_FORMAT

                # Highlight variances
                if has_variance and col in (10, 11):
                    cell.fill = VARIANCE_FILL
                elif not has_variance:
                    cell.fill = MATCH_FILL

        self._auto_fit_columns(ws)

    def _create_group_sheet(
        self,
        wb: Workbook,
        groups: Sequence[GroupMatch],
        transactions: dict[str, Transaction],
        entries: dict[str, LedgerEntry],
    ) -> None:
        """Create the group matches sheet, one row per member record."""
        ws = wb.create_sheet(self.sheet_names.group)
        headers = [
            "Reconciliation ID",
            "Side",
            "Date",
            "Description",
            "Amount",
            "Group Key",
            "Group Total",
            "Score",
            "Value Difference",
        ]
        self._write_headers(ws, headers)

        row_num = 2
        for group in groups:
            members: list[tuple[str, Any, str, Any, str, Any]] = []
            for txn_id in group.transaction_ids:
                txn = transactions.get(txn_id)
                if txn:
                    members.append(
                        ("Bank", txn.date, txn.description, txn.amount, group.bank_key, group.bank_total)
                    )
            for entry_id in group.ledger_ids:
                entry = entries.get(entry_id)
                if entry:
                    members.append(
                        ("Ledger", entry.date, entry.description, entry.value, group.ledger_key, group.ledger_total)
                    )

            for side, when, description, amount, key, total in members:
                row_data = [
                    group.reconciliation_id,
                    side,
                    when or "",
                    description,
                    float(amount),
                    key,
                    float(total),
                    round(group.score, 4),
                    float(group.value_diff),
                ]
                for col, value in enumerate(row_data, start=1):
                    cell = ws.cell(row=row_num, column=col, value=value)
                    cell.border = THIN_BORDER
                    if col in (5, 7, 9):
                        cell.number_format = MONEY_FORMAT
                    if group.value_diff and col == 9:
                        cell.fill = VARIANCE_FILL
                row_num += 1

        self._auto_fit_columns(ws)

    def _create_pending_bank_sheet(
        self, wb: Workbook, pending: Sequence[Transaction]
    ) -> None:
        """Create the pending bank transactions sheet."""
        ws = wb.create_sheet(self.sheet_names.pending_bank)
        headers = ["Date", "Description", "Debit", "Credit", "Amount", "Account", "Source"]
        self._write_headers(ws, headers)

        for row_num, txn in enumerate(pending, start=2):
            row_data = [
                txn.date,
                txn.description,
                float(txn.debit),
                float(txn.credit),
                float(txn.amount),
                txn.account,
                txn.source,
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = UNMATCHED_FILL
                if col in (3, 4, 5):
                    cell.number_format = MONEY_FORMAT

        self._auto_fit_columns(ws)

    def _create_pending_ledger_sheet(
        self, wb: Workbook, pending: Sequence[LedgerEntry]
    ) -> None:
        """Create the pending ledger entries sheet."""
        ws = wb.create_sheet(self.sheet_names.pending_ledger)
        headers = ["Date", "Description", "Value", "Account", "Source"]
        self._write_headers(ws, headers)

        for row_num, entry in enumerate(pending, start=2):
            row_data = [
                entry.date or "",
                entry.description,
                float(entry.value),
                entry.account,
                entry.source,
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = UNMATCHED_FILL
                if col == 3:
                    cell.number_format = MONEY_FORMAT

        self._auto_fit_columns(ws)

    @staticmethod
    def _write_headers(ws: Worksheet, headers: Sequence[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            column = column_cells[0].column_letter
            max_length = max(
                (len(str(cell.value)) for cell in column_cells if cell.value is not None),
                default=0,
            )
            ws.column_dimensions[column].width = min(max_length + 2, 50)
