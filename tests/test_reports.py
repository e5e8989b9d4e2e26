"""Tests for CSV/JSON exports and the Excel workbook."""

from decimal import Decimal
import json

import pytest
from openpyxl import load_workbook

from bank_ledger_recon.matching.engine import MatchingEngine
from bank_ledger_recon.normalizer import RecordNormalizer
from bank_ledger_recon.reports.excel_generator import ExcelReportGenerator
from bank_ledger_recon.reports.exporter import (
    export_csv,
    export_state,
    load_state,
    read_state,
    write_csv,
    write_state,
)
from bank_ledger_recon.rules import RuleEngine
from bank_ledger_recon.store import ReconciliationStore
from bank_ledger_recon.utils.exceptions import MalformedFileError

from .conftest import BR_STATEMENT_CSV, LEDGER_CSV


@pytest.fixture
def reconciled_store(store, config, fixed_clock):
    normalizer = RecordNormalizer(store, config)
    normalizer.import_file("extrato.csv", BR_STATEMENT_CSV.encode("utf-8"))
    normalizer.import_ledger("razao.csv", LEDGER_CSV.encode("utf-8"))
    store.add_accounts(["Receitas - Vendas", "Despesas - Energia"])
    RuleEngine(store).create_rule("tarifa", "Despesas - Tarifas")
    MatchingEngine(config, clock=fixed_clock).run_store(store)
    return store


class TestCsvExport:
    """Tests for the unified CSV statement."""

    def test_header_and_bom(self, make_txn):
        content = export_csv([make_txn("2026-02-03", "-5.00", "Tarifa")])
        lines = content.splitlines()

        assert content.startswith("\ufeff")
        assert lines[0] == "\ufeffdate,description,amount,account,status,match_type,match_score"
        assert lines[1] == "2026-02-03,Tarifa,-5.00,,pending,none,"

    def test_round_trip_through_import(self, config, make_txn):
        original = [
            make_txn("2026-02-03", "1250.50", "PIX RECEBIDO, CLIENTE A", account="Receitas - Vendas"),
            make_txn("2026-02-04", "-320.75", 'ENERGIA "ELETRICA"'),
            make_txn("2026-01-31", "-1234.56", "Aluguel"),
        ]
        store = ReconciliationStore()
        result = RecordNormalizer(store, config).import_file(
            "unified.csv", export_csv(original).encode("utf-8")
        )

        assert result.imported == 3
        imported = {(t.date, t.description, t.amount) for t in store.transactions}
        assert imported == {(t.date, t.description, t.amount) for t in original}
        vendas = next(t for t in store.transactions if t.amount == Decimal("1250.50"))
        assert vendas.account == "Receitas - Vendas"

    def test_write_csv(self, tmp_path, make_txn):
        path = write_csv([make_txn("2026-02-03", "1", "A")], tmp_path / "out" / "unified.csv")
        assert path.read_bytes().startswith(b"\xef\xbb\xbf")


class TestStateDocument:
    """Tests for the JSON session state."""

    def test_document_contents(self, reconciled_store):
        doc = export_state(reconciled_store)

        assert doc["version"] == 1
        assert doc["metadata"]["company"] == "ACME Ltda"
        assert doc["metadata"]["currency"] == "BRL"
        assert len(doc["transactions"]) == 2
        assert doc["metrics"]["matched"] == 2
        assert doc["last_report"]["totals"]["matched_count"] == 2
        json.dumps(doc)

    def test_round_trip(self, reconciled_store):
        doc = json.loads(json.dumps(export_state(reconciled_store)))
        restored = load_state(doc)

        assert restored.transactions == reconciled_store.transactions
        assert restored.ledger_entries == reconciled_store.ledger_entries
        assert restored.accounts == reconciled_store.accounts
        assert restored.rules == reconciled_store.rules
        assert restored.rules[0].is_valid
        assert restored.last_report == reconciled_store.last_report
        assert restored.company == "ACME Ltda"

    def test_file_round_trip(self, reconciled_store, tmp_path):
        path = write_state(reconciled_store, tmp_path / "state.json")
        restored = read_state(path)
        assert restored.metrics() == reconciled_store.metrics()

    def test_rejects_foreign_documents(self):
        with pytest.raises(MalformedFileError):
            load_state({"hello": "world"})
        with pytest.raises(MalformedFileError):
            load_state({"version": 99, "transactions": []})
        with pytest.raises(MalformedFileError):
            load_state({"version": 1, "transactions": [{"id": "x"}]})

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(MalformedFileError):
            read_state(path)


class TestExcelReport:
    """Tests for the reconciliation workbook."""

    def test_workbook_sheets(self, reconciled_store, config, tmp_path):
        output = tmp_path / "reports" / "recon.xlsx"
        ExcelReportGenerator(config).generate_report(
            reconciled_store.last_report, reconciled_store, output
        )

        wb = load_workbook(output)
        sheets = config.output.sheets
        assert wb.sheetnames == [
            sheets.summary,
            sheets.exact,
            sheets.tolerance,
            sheets.fuzzy,
            sheets.group,
            sheets.pending_bank,
            sheets.pending_ledger,
        ]
        assert wb[sheets.summary]["A1"].value == "Bank Reconciliation Summary"

    def test_match_rows(self, reconciled_store, config, tmp_path):
        output = tmp_path / "recon.xlsx"
        report = reconciled_store.last_report
        ExcelReportGenerator(config).generate_report(report, reconciled_store, output)

        wb = load_workbook(output)
        sheets = config.output.sheets
        matched_rows = (
            wb[sheets.exact].max_row - 1
            + wb[sheets.tolerance].max_row - 1
            + wb[sheets.fuzzy].max_row - 1
        )
        assert matched_rows == len(report.pair_matches) == 2
        # Header only
        assert wb[sheets.pending_bank].max_row == 1
        assert wb[sheets.pending_ledger].max_row == 1

    def test_group_rows_list_every_member(self, config, tmp_path, fixed_clock, make_txn, make_entry):
        store = ReconciliationStore()
        store.transactions = [
            make_txn("2026-03-01", "-300", "PAGTO ACME 1/2"),
            make_txn("2026-03-02", "-700", "PAGTO ACME 2/2"),
        ]
        store.ledger_entries = [
            make_entry("2026-03-01", "-400", "ACME parcela 1"),
            make_entry("2026-03-02", "-600", "ACME parcela 2"),
        ]
        report = MatchingEngine(config, clock=fixed_clock).run_store(store)
        assert len(report.group) == 1

        output = ExcelReportGenerator(config).generate_report(report, store, tmp_path / "r.xlsx")
        ws = load_workbook(output)[config.output.sheets.group]

        assert ws.max_row - 1 == 4
        assert [ws.cell(row=r, column=2).value for r in range(2, 6)] == ["Bank", "Bank", "Ledger", "Ledger"]
        assert ws.cell(row=2, column=1).value == "GROUP-0001"
