"""Tests for the delimited, OFX, free-text and JSON decoders."""

from datetime import date
from decimal import Decimal

import pytest

from bank_ledger_recon.parsers.interchange import decode_interchange, looks_like_interchange
from bank_ledger_recon.parsers.json_input import decode_json_transactions
from bank_ledger_recon.parsers.schema import detect_columns
from bank_ledger_recon.parsers.tabular import decode, detect_delimiter
from bank_ledger_recon.parsers.text_statement import decode_statement_text
from bank_ledger_recon.utils.encoding import decode_text
from bank_ledger_recon.utils.exceptions import MalformedFileError

OFX_SAMPLE = """OFXHEADER:100
<OFX><BANKMSGSRSV1><STMTTRNRS><STMTRS><BANKTRANLIST>
<STMTTRN>
<TRNTYPE>CREDIT
<DTPOSTED>20260203120000[-3:BRT]
<TRNAMT>1250.50
<MEMO>PIX RECEBIDO CLIENTE A
</STMTTRN>
<STMTTRN>
<TRNTYPE>DEBIT
<DTPOSTED>20260204
<TRNAMT>-320.75
<NAME>ENERGIA
</STMTTRN>
<STMTTRN>
<TRNTYPE>DEBIT
<DTPOSTED>20260205
<TRNAMT>-10.00
</STMTTRN>
<STMTTRN>
<DTPOSTED>invalid
<TRNAMT>99.00
</STMTTRN>
</BANKTRANLIST></STMTRS></STMTTRNRS></BANKMSGSRSV1></OFX>
"""


class TestDelimiterDetection:
    """Tests for delimiter sniffing."""

    def test_semicolon(self):
        assert detect_delimiter(["01/02/2026;Energy Bill;-450,50"]) == ";"

    def test_comma(self):
        assert detect_delimiter(["01/02/2026,Energy Bill,-450.50"]) == ","

    def test_tab(self):
        assert detect_delimiter(["01/02/2026\tEnergy Bill\t-450.50"]) == "\t"

    def test_quoted_delimiters_are_not_counted(self):
        line = '"Smith, John, Jr";"Rent, March";10'
        assert detect_delimiter([line]) == ";"

    def test_tie_defaults_to_semicolon(self):
        assert detect_delimiter(["a;b,c"]) == ";"
        assert detect_delimiter(["no delimiters here"]) == ";"


class TestTabularDecode:
    """Tests for the delimited text scanner."""

    def test_quotes_and_escaped_quotes(self):
        rows = decode('"Smith, John";"He said ""hi""";10\r\n')
        assert rows == [["Smith, John", 'He said "hi"', "10"]]

    def test_crlf_and_blank_lines(self):
        rows = decode("a;b\r\n\r\n;\r\nc;d")
        assert rows == [["a", "b"], ["c", "d"]]

    def test_bom_and_whitespace_trimmed(self):
        rows = decode("\ufeffDate ; Amount \n01/02/2026 ; 10 \n")
        assert rows == [["Date", "Amount"], ["01/02/2026", "10"]]

    def test_quoted_newline_stays_in_field(self):
        rows = decode('01/02/2026;"line one\nline two";5\n')
        assert rows == [["01/02/2026", "line one\nline two", "5"]]


class TestColumnDetection:
    """Tests for header keyword and content-shape column detection."""

    def test_headerless_rows_resolved_by_shape(self):
        mapping = detect_columns([["2026-02-01", "Deposit", "3200"]])
        assert mapping is not None
        assert (mapping.date_col, mapping.desc_col, mapping.amount_col) == (0, 1, 2)
        assert mapping.has_header is False

    def test_portuguese_header(self):
        rows = [["Valor", "Descrição", "Data"], ["-10,00", "Tarifa", "03/02/2026"]]
        mapping = detect_columns(rows)
        assert (mapping.date_col, mapping.desc_col, mapping.amount_col) == (2, 1, 0)
        assert mapping.has_header is True
        assert mapping.data_start == 1

    def test_split_debit_credit_columns(self):
        rows = [
            ["Data", "Histórico", "Débito", "Crédito", "Saldo"],
            ["03/02/2026", "Energia", "320,75", "", "1.000,00"],
        ]
        mapping = detect_columns(rows)
        assert mapping.uses_split_amount
        assert (mapping.debit_col, mapping.credit_col, mapping.balance_col) == (2, 3, 4)

    def test_account_column(self):
        rows = [["Date", "Description", "Amount", "Account"], ["2026-02-03", "Rent", "-900", "Rent"]]
        assert detect_columns(rows).account_col == 3

    def test_value_date_column_is_not_the_amount(self):
        rows = [
            ["Booking Date", "Value Date", "Description", "Amount"],
            ["03/02/2026", "04/02/2026", "Energy bill", "-450.50"],
        ]
        mapping = detect_columns(rows)
        assert (mapping.date_col, mapping.desc_col, mapping.amount_col) == (0, 2, 3)

    def test_portuguese_value_date_header(self):
        rows = [
            ["Data Mov.", "Data Valor", "Descrição", "Montante", "Saldo"],
            ["03/02/2026", "04/02/2026", "Energia", "-450,50", "1.000,00"],
        ]
        mapping = detect_columns(rows)
        assert (mapping.date_col, mapping.amount_col, mapping.balance_col) == (0, 3, 4)

    def test_no_date_column_returns_none(self):
        assert detect_columns([["foo", "bar"], ["baz", "qux"]]) is None
        assert detect_columns([]) is None


class TestInterchangeDecoder:
    """Tests for OFX block extraction."""

    def test_detects_blocks(self):
        assert looks_like_interchange(OFX_SAMPLE)
        assert not looks_like_interchange("Data;Valor\n")

    def test_extracts_records(self):
        records, dropped = decode_interchange(OFX_SAMPLE, placeholder="No description")

        assert dropped == 1
        assert [r.date for r in records] == [date(2026, 2, 3), date(2026, 2, 4), date(2026, 2, 5)]
        assert [r.amount for r in records] == [
            Decimal("1250.50"),
            Decimal("-320.75"),
            Decimal("-10.00"),
        ]
        assert [r.description for r in records] == [
            "PIX RECEBIDO CLIENTE A",
            "ENERGIA",
            "No description",
        ]


class TestStatementText:
    """Tests for free-text statement decoding."""

    def test_lines_and_opening_balance(self):
        text = (
            "EXTRATO DE CONTA CORRENTE\n"
            "03/02/2026  PIX RECEBIDO CLIENTE A      1.250,50      10.480,90\n"
            "04/02/2026  ENERGIA ELETRICA            -320,75\n"
            "Saldo final 10.160,15\n"
        )
        records, opening = decode_statement_text(text)

        assert len(records) == 2
        assert records[0].description == "PIX RECEBIDO CLIENTE A"
        assert records[0].amount == Decimal("1250.50")
        assert records[0].balance == Decimal("10480.90")
        assert records[1].amount == Decimal("-320.75")
        assert opening == Decimal("9230.40")

    def test_opening_balance_from_earliest_line(self):
        text = (
            "05/02/2026  ENERGIA ELETRICA   -320,75   9.159,65\n"
            "03/02/2026  PIX RECEBIDO       1.250,50  9.480,40\n"
        )
        records, opening = decode_statement_text(text)

        assert [r.date for r in records] == [date(2026, 2, 5), date(2026, 2, 3)]
        assert opening == Decimal("8229.90")

    def test_reference_year_for_short_dates(self):
        records, opening = decode_statement_text("15/12  TARIFA PACOTE  -29,90", reference_year=2025)
        assert records[0].date == date(2025, 12, 15)
        assert opening is None


class TestJsonInput:
    """Tests for JSON transaction arrays."""

    def test_aliases_and_rejections(self):
        content = """[
            {"data": "03/02/2026", "descricao": "PIX", "valor": "1.250,50"},
            {"date": "2026-02-04", "description": "Energy", "debit": "320.75"},
            {"date": "bad", "description": "x", "amount": 1},
            {"date": "2026-02-04", "description": "  ", "amount": 1},
            5
        ]"""
        records, rejected = decode_json_transactions(content, "payload.json")

        assert [r.amount for r in records] == [Decimal("1250.50"), Decimal("-320.75")]
        assert records[0].date == date(2026, 2, 3)
        assert len(rejected) == 3
        assert rejected[-1] == "item 4: not an object"

    def test_short_dates_use_reference_year(self):
        content = '[{"data": "03/02", "descricao": "Energia", "valor": "-450,50"}]'
        records, _ = decode_json_transactions(content, reference_year=2025)

        assert records[0].date == date(2025, 2, 3)
        assert records[0].raw_date == "03/02"

    def test_wrapped_transactions_object(self):
        content = '{"transactions": [{"date": "2026-02-03", "memo": "Fee", "amount": -5}]}'
        records, rejected = decode_json_transactions(content)
        assert records[0].description == "Fee"
        assert rejected == []

    def test_invalid_documents(self):
        with pytest.raises(MalformedFileError):
            decode_json_transactions("{not json", "bad.json")
        with pytest.raises(MalformedFileError):
            decode_json_transactions('{"a": 1}', "bad.json")


class TestDecodeText:
    """Tests for byte decoding with encoding fallbacks."""

    def test_legacy_encoding_fallback(self):
        assert decode_text("Descrição".encode("cp1252")) == "Descrição"

    def test_bom_removed(self):
        assert decode_text("\ufeffData".encode("utf-8")) == "Data"

    def test_empty_content_rejected(self):
        with pytest.raises(MalformedFileError) as exc_info:
            decode_text(b"", "empty.csv")
        assert exc_info.value.source == "empty.csv"
