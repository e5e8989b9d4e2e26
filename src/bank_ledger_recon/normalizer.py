"""
Import pipeline: raw file bytes to canonical transactions and ledger entries.

Format detection, decoding and column detection happen here; the decoders
themselves live in ``parsers``. Problems with single records or whole files
never abort a batch, they are collected as ImportIssues on the result.
"""

from decimal import Decimal
from pathlib import PurePath
from typing import Callable, Iterable, Optional
import logging
import re
import uuid

from .config import ReconConfig
from .models.transaction import ImportResult, LedgerEntry, RawRecord, Transaction
from .parsers.interchange import decode_interchange, looks_like_interchange
from .parsers.json_input import decode_json_transactions
from .parsers.schema import ColumnMapping, detect_columns
from .parsers.tabular import decode
from .parsers.text_statement import decode_statement_text
from .parsers.values import is_partial_date, parse_amount, parse_date, try_parse_amount
from .rules import RuleEngine
from .store import ReconciliationStore
from .utils.encoding import decode_text
from .utils.exceptions import ExtractionError, MalformedFileError

logger = logging.getLogger(__name__)

# External collaborator turning a document (PDF, scanned image) into text
TextExtractor = Callable[[bytes], str]

INTERCHANGE_SUFFIXES = {".ofx", ".qfx"}
DOCUMENT_SUFFIXES = {".pdf", ".png", ".jpg", ".jpeg", ".tif", ".tiff"}


def _cell(row: list[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index]


def _fingerprint(txn_date, description: str, amount: Decimal) -> tuple:
    return (txn_date, re.sub(r"\s+", " ", description.strip().lower()), amount)


def rows_to_records(
    rows: list[list[str]], mapping: ColumnMapping, reference_year: Optional[int] = None
) -> tuple[list[RawRecord], int]:
    """
    Convert decoded rows into raw records using a detected column mapping.

    Returns:
        Tuple of (records, dropped_count); rows without a parsable date are
        dropped
    """
    records: list[RawRecord] = []
    dropped = 0

    for row in rows[mapping.data_start :]:
        raw_date = _cell(row, mapping.date_col)
        txn_date = parse_date(raw_date, reference_year=reference_year)
        if txn_date is None:
            dropped += 1
            continue

        if mapping.uses_split_amount:
            debit = parse_amount(_cell(row, mapping.debit_col))
            credit = parse_amount(_cell(row, mapping.credit_col))
            amount = credit - abs(debit)
        else:
            amount = parse_amount(_cell(row, mapping.amount_col))

        balance = None
        if mapping.balance_col is not None:
            balance = try_parse_amount(_cell(row, mapping.balance_col))

        records.append(
            RawRecord(
                date=txn_date,
                description=_cell(row, mapping.desc_col),
                amount=amount,
                balance=balance,
                account=_cell(row, mapping.account_col),
                raw_date=raw_date,
            )
        )

    return records, dropped


class RecordNormalizer:
    """
    Turns imported files into canonical records held by a store.

    Transactions are appended (the store stays sorted by date, newest first);
    a ledger import replaces the ledger collection.
    """

    def __init__(
        self,
        store: ReconciliationStore,
        config: Optional[ReconConfig] = None,
        rule_engine: Optional[RuleEngine] = None,
    ):
        self.store = store
        self.config = config or ReconConfig()
        self.rule_engine = rule_engine or RuleEngine(store)

    @property
    def _reference_year(self) -> Optional[int]:
        return self.config.input.reference_year

    def import_files(
        self,
        files: Iterable[tuple[str, bytes]],
        extractor: Optional[TextExtractor] = None,
    ) -> ImportResult:
        """
        Import a batch of bank statement files.

        Args:
            files: (file name, raw bytes) pairs
            extractor: Optional document-to-text collaborator for PDFs/images

        Returns:
            Combined result; rejected files are listed as issues

        Raises:
            ExtractionError: If the external text extractor fails
        """
        result = ImportResult()
        for name, data in files:
            try:
                result.merge(self.import_file(name, data, extractor))
            except MalformedFileError as e:
                logger.warning(f"Rejected file {name}: {e.reason}")
                result.add_issue(name, "malformed_file", e.reason)

        logger.info(
            f"Import batch finished: {result.imported} imported, {result.dropped} dropped, "
            f"{result.duplicates} duplicates, {result.ignored} ignored, "
            f"{len(result.issues)} issue(s)"
        )
        return result

    def import_file(
        self, name: str, data: bytes, extractor: Optional[TextExtractor] = None
    ) -> ImportResult:
        """
        Import one bank statement file, detecting its format.

        Raises:
            MalformedFileError: If no records can be recovered from the file
            ExtractionError: If the external text extractor fails
        """
        suffix = PurePath(name).suffix.lower()

        if suffix in DOCUMENT_SUFFIXES:
            if extractor is None:
                result = ImportResult()
                result.add_issue(
                    name,
                    "unsupported_format",
                    "document files need a text extractor; import the extracted text instead",
                )
                return result
            try:
                text = extractor(data)
            except Exception as e:
                raise ExtractionError(f"Text extraction failed for {name}: {e}") from e
            return self.import_text(text, name)

        content = decode_text(data, name, self.config.input.encodings)

        if suffix in INTERCHANGE_SUFFIXES or looks_like_interchange(content):
            records, dropped = decode_interchange(
                content, placeholder=self.config.input.placeholder_description
            )
            if not records and not dropped:
                raise MalformedFileError(name, "no <STMTTRN> blocks found")
            result = self.import_raw_records(records, name)
            self._count_dropped(result, name, dropped, "OFX blocks with invalid date or amount")
            return result

        if suffix == ".json":
            records, rejected = decode_json_transactions(content, name, self._reference_year)
            result = self.import_raw_records(records, name)
            if rejected:
                result.dropped += len(rejected)
                for message in rejected:
                    result.add_issue(name, "invalid_record", message)
            return result

        rows = decode(content, self.config.input.delimiter_sample_lines)
        mapping = detect_columns(rows, self.config.input.schema_sample_rows)
        if mapping is not None:
            records, dropped = rows_to_records(rows, mapping, self._reference_year)
            result = self.import_raw_records(records, name)
            self._count_dropped(result, name, dropped, "rows without a valid date")
            return result

        # Not a table: try the free-text statement layout
        text_result = self.import_text(content, name)
        if text_result.imported or text_result.duplicates or text_result.ignored:
            return text_result

        raise MalformedFileError(name, "no date/amount columns could be detected")

    def import_text(self, text: str, source: str = "text") -> ImportResult:
        """Import transactions from pre-extracted statement text."""
        records, opening_balance = decode_statement_text(text, self._reference_year)
        result = self.import_raw_records(records, source)
        result.opening_balance = opening_balance
        return result

    def import_raw_records(
        self, records: Iterable[RawRecord], source: str
    ) -> ImportResult:
        """
        Normalize decoded records into transactions and store them.

        Records missing a date or description are dropped, records already
        imported earlier are skipped as duplicates, and the batch is truncated
        at the configured capacity.
        """
        result = ImportResult()
        valid: list[RawRecord] = []
        dropped = 0
        for record in records:
            if record.date is None or not record.description.strip():
                dropped += 1
                continue
            valid.append(record)
        self._count_dropped(result, source, dropped, "records without date or description")

        existing = {
            _fingerprint(t.date, t.description, t.amount) for t in self.store.transactions
        }
        fresh: list[RawRecord] = []
        for record in valid:
            if _fingerprint(record.date, record.description, record.amount) in existing:
                result.duplicates += 1
            else:
                fresh.append(record)
        if result.duplicates:
            result.add_issue(
                source,
                "duplicate_records",
                f"{result.duplicates} record(s) were already imported",
                result.duplicates,
            )

        fresh = self._apply_capacity(result, source, fresh, len(self.store.transactions))
        self._flag_partial_dates(result, source, fresh)

        created = [
            Transaction(
                id=str(uuid.uuid4()),
                date=record.date,
                description=record.description.strip(),
                amount=record.amount,
                account=record.account or self.rule_engine.suggest_account(record.description),
                balance=record.balance,
                source=source,
            )
            for record in fresh
        ]
        self.store.transactions.extend(created)
        self.store.sort_transactions()

        result.imported = len(created)
        logger.info(f"Imported {len(created)} transactions from {source}")
        return result

    def import_ledger(self, name: str, data: bytes) -> ImportResult:
        """
        Import an accounting ledger export, replacing the current ledger.

        Uses the same column detection as statements; an account column is
        picked up when its header is recognised.

        Raises:
            MalformedFileError: If the file has no detectable columns
        """
        content = decode_text(data, name, self.config.input.encodings)
        result = ImportResult()

        if PurePath(name).suffix.lower() == ".json":
            records, rejected = decode_json_transactions(content, name, self._reference_year)
            for message in rejected:
                result.add_issue(name, "invalid_record", message)
            dropped = len(rejected)
        else:
            rows = decode(content, self.config.input.delimiter_sample_lines)
            mapping = detect_columns(rows, self.config.input.schema_sample_rows)
            if mapping is None:
                raise MalformedFileError(name, "no date/amount columns could be detected")
            records, dropped = rows_to_records(rows, mapping, self._reference_year)

        valid = [r for r in records if r.date is not None and r.description.strip()]
        dropped += len(records) - len(valid)
        self._count_dropped(result, name, dropped, "ledger rows without date or description")

        valid = self._apply_capacity(result, name, valid, 0)
        self._flag_partial_dates(result, name, valid)

        self.store.ledger_entries = [
            LedgerEntry(
                id=str(uuid.uuid4()),
                date=record.date,
                description=record.description.strip(),
                value=record.amount,
                account=record.account,
                source=name,
            )
            for record in valid
        ]
        result.imported = len(self.store.ledger_entries)
        logger.info(f"Loaded {result.imported} ledger entries from {name}")
        return result

    def import_accounts(self, name: str, data: bytes) -> int:
        """
        Import a chart of accounts ("code, name" rows after a header).

        Returns:
            Number of new account labels
        """
        content = decode_text(data, name, self.config.input.encodings)
        labels: list[str] = []
        for row in decode(content, self.config.input.delimiter_sample_lines)[1:]:
            code = row[0] if row else ""
            title = row[1] if len(row) > 1 else ""
            if code and title:
                labels.append(f"{code} - {title}")
            elif code:
                labels.append(code)

        added = self.store.add_accounts(labels)
        logger.info(f"Added {added} account(s) from {name}")
        return added

    def _apply_capacity(
        self, result: ImportResult, source: str, records: list[RawRecord], stored: int
    ) -> list[RawRecord]:
        capacity = max(0, self.config.input.max_records - stored)
        if len(records) <= capacity:
            return records

        result.ignored += len(records) - capacity
        result.add_issue(
            source,
            "capacity_exceeded",
            f"record limit of {self.config.input.max_records} reached; "
            f"{len(records) - capacity} record(s) ignored",
            len(records) - capacity,
        )
        logger.warning(f"{source}: capacity reached, ignoring {len(records) - capacity} record(s)")
        return records[:capacity]

    def _flag_partial_dates(
        self, result: ImportResult, source: str, records: list[RawRecord]
    ) -> None:
        if self._reference_year is not None:
            return
        partial = sum(1 for record in records if is_partial_date(record.raw_date))
        if partial:
            result.add_issue(
                source,
                "ambiguous_year",
                f"{partial} date(s) had no year; the current year was assumed",
                partial,
            )

    @staticmethod
    def _count_dropped(result: ImportResult, source: str, dropped: int, what: str) -> None:
        if not dropped:
            return
        result.dropped += dropped
        result.add_issue(source, "dropped_records", f"{dropped} {what} dropped", dropped)
