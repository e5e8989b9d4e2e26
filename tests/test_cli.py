"""Tests for the command-line interface and sample session."""

from datetime import date
import json

import pytest
from click.testing import CliRunner

from bank_ledger_recon.cli import main
from bank_ledger_recon.config import load_config
from bank_ledger_recon.matching.engine import MatchingEngine
from bank_ledger_recon.models.transaction import MatchType
from bank_ledger_recon.samples import load_sample_data

from .conftest import BR_STATEMENT_CSV, LEDGER_CSV


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def input_files(tmp_path):
    bank = tmp_path / "extrato.csv"
    bank.write_text(BR_STATEMENT_CSV, encoding="utf-8")
    ledger = tmp_path / "razao.csv"
    ledger.write_text(LEDGER_CSV, encoding="utf-8")
    return bank, ledger


class TestSampleData:
    """Tests for the built-in sample session."""

    def test_samples_reconcile_exactly(self, normalizer, store, config):
        result = load_sample_data(normalizer, today=date(2026, 3, 10))
        report = MatchingEngine(config).run_store(store)

        assert result.imported == 2
        assert len(store.ledger_entries) == 2
        assert store.accounts == ["Receitas - Vendas", "Despesas - Energia"]
        assert len(report.exact) == 2
        assert all(t.match_type == MatchType.EXACT for t in store.transactions)
        pix = next(t for t in store.transactions if t.description.startswith("Recebimento"))
        assert pix.account == "Receitas - Vendas"

    def test_loading_twice_skips_duplicates(self, normalizer, store):
        load_sample_data(normalizer, today=date(2026, 3, 10))
        result = load_sample_data(normalizer, today=date(2026, 3, 10))

        assert result.duplicates == 2
        assert len(store.transactions) == 2


class TestReconcileCommand:
    """Tests for the reconcile command."""

    def test_full_run_writes_outputs(self, runner, input_files, tmp_path):
        bank, ledger = input_files
        report = tmp_path / "out" / "recon.xlsx"
        csv_path = tmp_path / "out" / "unified.csv"
        state_path = tmp_path / "out" / "state.json"

        result = runner.invoke(
            main,
            [
                "reconcile",
                str(bank),
                "--ledger",
                str(ledger),
                "-o",
                str(report),
                "--export-csv",
                str(csv_path),
                "--save-state",
                str(state_path),
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Reconciliation Summary" in result.output
        assert report.exists()
        assert csv_path.read_text(encoding="utf-8").startswith("\ufeffdate,")
        state = json.loads(state_path.read_text(encoding="utf-8"))
        assert state["metrics"]["matched"] == 2

    def test_dry_run_writes_nothing(self, runner, input_files, tmp_path):
        bank, ledger = input_files
        report = tmp_path / "recon.xlsx"

        result = runner.invoke(
            main, ["reconcile", str(bank), "--ledger", str(ledger), "-o", str(report), "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert not report.exists()

    def test_resume_from_state(self, runner, input_files, tmp_path):
        bank, ledger = input_files
        state_path = tmp_path / "state.json"
        first = runner.invoke(
            main,
            [
                "reconcile",
                str(bank),
                "--ledger",
                str(ledger),
                "--save-state",
                str(state_path),
                "-o",
                str(tmp_path / "first.xlsx"),
            ],
        )
        assert first.exit_code == 0, first.output

        second = runner.invoke(
            main,
            [
                "reconcile",
                "--state",
                str(state_path),
                "--tolerance-days",
                "0",
                "--dry-run",
            ],
        )
        assert second.exit_code == 0, second.output

    def test_requires_input(self, runner):
        result = runner.invoke(main, ["reconcile"])
        assert result.exit_code == 2

    def test_negative_tolerance_rejected(self, runner, input_files):
        bank, _ = input_files
        result = runner.invoke(main, ["reconcile", str(bank), "--tolerance-value", "-1"])
        assert result.exit_code == 2

    def test_malformed_bank_file_is_reported(self, runner, input_files, tmp_path):
        bank, ledger = input_files
        empty = tmp_path / "empty.csv"
        empty.write_bytes(b"")

        result = runner.invoke(
            main, ["reconcile", str(empty), str(bank), "--ledger", str(ledger), "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert "Import Issues" in result.output

    def test_broken_ledger_exits_with_error(self, runner, input_files, tmp_path):
        bank, _ = input_files
        ledger = tmp_path / "razao.csv"
        ledger.write_text("just,text\nmore,text\n", encoding="utf-8")

        result = runner.invoke(main, ["reconcile", str(bank), "--ledger", str(ledger), "--dry-run"])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestOtherCommands:
    """Tests for parse, demo and init-config."""

    def test_parse(self, runner, input_files):
        bank, _ = input_files
        result = runner.invoke(main, ["parse", str(bank)])

        assert result.exit_code == 0, result.output
        assert "Total transactions: 2" in result.output

    def test_demo(self, runner, tmp_path):
        output = tmp_path / "demo.xlsx"
        result = runner.invoke(main, ["demo", "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert "Reconciliation Summary" in result.output
        assert output.exists()

    def test_init_config(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        result = runner.invoke(main, ["init-config", "-o", str(path)])

        assert result.exit_code == 0, result.output
        assert load_config(path).matching.tolerance_days == 3

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
