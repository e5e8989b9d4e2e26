"""Report writers: Excel workbook, unified CSV and JSON session state."""

from .excel_generator import ExcelReportGenerator
from .exporter import (
    export_csv,
    export_state,
    load_state,
    read_state,
    write_csv,
    write_state,
)

__all__ = [
    "ExcelReportGenerator",
    "export_csv",
    "export_state",
    "load_state",
    "read_state",
    "write_csv",
    "write_state",
]
