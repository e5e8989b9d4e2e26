"""
Command-line interface for the bank statement / ledger reconciliation tool.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import ReconConfig, generate_default_config, load_config
from .matching.engine import MatchingEngine
from .models.transaction import ImportResult, ReconciliationReport, Transaction
from .normalizer import RecordNormalizer
from .reports.excel_generator import ExcelReportGenerator
from .reports.exporter import read_state, write_csv, write_state
from .samples import load_sample_data
from .store import ReconciliationStore
from .utils.logging_config import level_from_name, setup_logging

console = Console()

PREVIEW_ROWS = 20


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank Statement to Ledger Reconciliation Tool."""
    pass


@main.command()
@click.argument("bank_files", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--ledger",
    type=click.Path(exists=True, path_type=Path),
    help="Ledger export (CSV or JSON); replaces the session ledger",
)
@click.option(
    "--accounts",
    type=click.Path(exists=True, path_type=Path),
    help="Chart of accounts CSV (code, name)",
)
@click.option(
    "--state",
    type=click.Path(exists=True, path_type=Path),
    help="Session state JSON to start from",
)
@click.option("--save-state", type=click.Path(path_type=Path), help="Write session state JSON")
@click.option("--export-csv", type=click.Path(path_type=Path), help="Write unified CSV statement")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option(
    "--tolerance-days",
    type=click.IntRange(min=0),
    default=None,
    help="Override date tolerance in days",
)
@click.option(
    "--tolerance-value",
    type=click.FloatRange(min=0),
    default=None,
    help="Override amount tolerance in currency units",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Import and match without writing any output file"
)
def reconcile(
    bank_files: tuple[Path, ...],
    ledger: Optional[Path],
    accounts: Optional[Path],
    state: Optional[Path],
    save_state: Optional[Path],
    export_csv: Optional[Path],
    config: Optional[Path],
    output: Optional[Path],
    tolerance_days: Optional[int],
    tolerance_value: Optional[float],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile bank statements with ledger entries.

    BANK_FILES: Statement files (CSV, OFX, JSON or extracted statement text)
    """
    try:
        recon_config = load_config(config)
        _setup_cli_logging(recon_config, verbose)

        store = read_state(state) if state else _new_store(recon_config)
        if not bank_files and not store.transactions:
            raise click.UsageError("Provide at least one bank file or a --state document")

        normalizer = RecordNormalizer(store, recon_config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            if accounts:
                task = progress.add_task("Importing chart of accounts...", total=None)
                normalizer.import_accounts(accounts.name, accounts.read_bytes())
                progress.update(task, completed=True)

            task = progress.add_task("Importing bank statements...", total=None)
            result = normalizer.import_files((p.name, p.read_bytes()) for p in bank_files)
            progress.update(task, completed=True)

            if ledger:
                task = progress.add_task("Importing ledger...", total=None)
                result.merge(normalizer.import_ledger(ledger.name, ledger.read_bytes()))
                progress.update(task, completed=True)

            task = progress.add_task("Running reconciliation...", total=None)
            engine = MatchingEngine(recon_config)
            report = engine.run_store(
                store,
                tolerance_days=tolerance_days,
                tolerance_value=(
                    Decimal(str(tolerance_value)) if tolerance_value is not None else None
                ),
            )
            progress.update(task, completed=True)

        _display_import(result)
        _display_summary(report)

        if dry_run:
            console.print("\n[yellow]Dry run - no files written[/yellow]")
            return

        if output is None:
            now = datetime.now()
            output = Path(
                recon_config.output.excel_filename_template.format(
                    date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")
                )
            )

        report_path = ExcelReportGenerator(recon_config).generate_report(report, store, output)
        console.print(f"\n[green]Report generated: {report_path}[/green]")

        if export_csv:
            write_csv(store.transactions, export_csv)
            console.print(f"[green]CSV exported: {export_csv}[/green]")
        if save_state:
            write_state(store, save_state)
            console.print(f"[green]State saved: {save_state}[/green]")

    except click.UsageError:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("parse")
@click.argument("bank_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse(bank_file: Path, config: Optional[Path]):
    """
    Import one statement file and display its transactions.

    BANK_FILE: Statement file (CSV, OFX, JSON or extracted statement text)
    """
    try:
        recon_config = load_config(config)
        store = _new_store(recon_config)
        result = RecordNormalizer(store, recon_config).import_files(
            [(bank_file.name, bank_file.read_bytes())]
        )
    except Exception as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    _display_transactions(f"Transactions: {bank_file.name}", store.transactions)
    _display_import(result)


@main.command()
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
def demo(output: Optional[Path]):
    """Reconcile the built-in sample session."""
    recon_config = ReconConfig()
    store = _new_store(recon_config)
    result = load_sample_data(RecordNormalizer(store, recon_config))
    report = MatchingEngine(recon_config).run_store(store)

    _display_transactions("Sample Transactions", store.transactions)
    _display_import(result)
    _display_summary(report)

    if output:
        ExcelReportGenerator(recon_config).generate_report(report, store, output)
        console.print(f"\n[green]Report generated: {output}[/green]")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _setup_cli_logging(config: ReconConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else level_from_name(config.logging.level)
    log_file = Path(config.logging.file) if config.logging.file else None
    setup_logging(level, log_file, config.logging.format)


def _new_store(config: ReconConfig) -> ReconciliationStore:
    session = config.session
    return ReconciliationStore(
        company=session.company,
        bank=session.bank,
        currency=session.currency,
        notes=session.notes,
    )


def _display_transactions(title: str, transactions: list[Transaction]) -> None:
    table = Table(title=title)
    table.add_column("Date")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    table.add_column("Account")
    table.add_column("Status")

    for txn in transactions[:PREVIEW_ROWS]:
        table.add_row(
            str(txn.date),
            txn.description[:40] + "..." if len(txn.description) > 40 else txn.description,
            f"{txn.amount:,.2f}",
            txn.account or "-",
            txn.status.value,
        )

    console.print(table)

    if len(transactions) > PREVIEW_ROWS:
        console.print(f"\n... and {len(transactions) - PREVIEW_ROWS} more transactions")

    console.print(f"\nTotal transactions: {len(transactions)}")


def _display_import(result: ImportResult) -> None:
    """Display import counts and any issues."""
    console.print(
        f"Imported {result.imported}, dropped {result.dropped}, "
        f"duplicates {result.duplicates}, ignored {result.ignored}"
    )
    if result.opening_balance is not None:
        console.print(f"Opening balance: {result.opening_balance:,.2f}")
    if not result.issues:
        return

    table = Table(title="Import Issues")
    table.add_column("Source", style="cyan")
    table.add_column("Kind")
    table.add_column("Count", justify="right")
    table.add_column("Message")
    for issue in result.issues:
        table.add_row(issue.source, issue.kind, str(issue.count), issue.message)
    console.print(table)


def _display_summary(report: ReconciliationReport) -> None:
    """Display reconciliation summary in console."""
    totals = report.totals
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Bank Transactions", str(totals.bank_count))
    table.add_row("Ledger Entries", str(totals.ledger_count))
    table.add_row("Matched", str(totals.matched_count))
    table.add_row("Pending", str(totals.pending_count))
    table.add_row("Ledger Pending", str(totals.ledger_pending_count))
    for name, count in report.matches_by_pass.items():
        table.add_row(f"{name.capitalize()} Matches", str(count))
    table.add_row("Bank Match Rate", f"{totals.match_rate_bank:.1f}%")
    table.add_row("Ledger Match Rate", f"{totals.match_rate_ledger:.1f}%")

    console.print(table)


if __name__ == "__main__":
    main()
