"""JSON transaction arrays (exports from other tools, API payloads)."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional
import json
import logging

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from ..models.transaction import RawRecord
from ..utils.exceptions import MalformedFileError
from .values import parse_date, try_parse_amount

logger = logging.getLogger(__name__)

DATE_ALIASES = ("date", "data", "posted", "dtposted")


class JsonTransaction(BaseModel):
    """One element of a JSON transaction array."""

    model_config = ConfigDict(extra="ignore")

    txn_date: date = Field(validation_alias=AliasChoices(*DATE_ALIASES))
    description: str = Field(
        validation_alias=AliasChoices(
            "description", "descricao", "descrição", "memo", "name", "historico"
        )
    )
    amount: Decimal = Field(
        validation_alias=AliasChoices("amount", "valor", "value", "trnamt")
    )
    balance: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("balance", "saldo")
    )
    account: str = Field(default="", validation_alias=AliasChoices("account", "conta"))

    @field_validator("txn_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any, info: ValidationInfo) -> date:
        reference_year = (info.context or {}).get("reference_year")
        parsed = parse_date(value, reference_year=reference_year)
        if parsed is None:
            raise ValueError(f"unparsable date: {value!r}")
        return parsed

    @field_validator("description", mode="before")
    @classmethod
    def _require_description(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        if not text:
            raise ValueError("description is empty")
        return text

    @field_validator("amount", "balance", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Optional[Decimal]:
        if value is None:
            return None
        parsed = try_parse_amount(value)
        if parsed is None:
            raise ValueError(f"amount is not a finite number: {value!r}")
        return parsed

    @field_validator("account", mode="before")
    @classmethod
    def _account_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


def _with_split_amount(item: dict[str, Any]) -> dict[str, Any]:
    """Fold separate debit/credit keys into a signed amount."""
    keys = {"amount", "valor", "value", "trnamt"}
    if keys & item.keys():
        return item
    if "debit" not in item and "credit" not in item:
        return item
    debit = try_parse_amount(item.get("debit")) or Decimal("0")
    credit = try_parse_amount(item.get("credit")) or Decimal("0")
    return {**item, "amount": credit - abs(debit)}


def _raw_date(item: dict[str, Any]) -> str:
    """The date text the model consumed, picked in alias order."""
    for key in DATE_ALIASES:
        if key in item:
            return str(item[key])
    return ""


def decode_json_transactions(
    content: str, source: str = "json", reference_year: Optional[int] = None
) -> tuple[list[RawRecord], list[str]]:
    """
    Validate a JSON array of transactions.

    Args:
        content: JSON document text
        source: Name used in error messages
        reference_year: Year applied to "DD/MM" dates

    Returns:
        Tuple of (accepted records, rejection messages)

    Raises:
        MalformedFileError: If the document is not a JSON array
    """
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedFileError(source, f"invalid JSON: {e.msg}") from e

    if isinstance(payload, dict) and isinstance(payload.get("transactions"), list):
        payload = payload["transactions"]
    if not isinstance(payload, list):
        raise MalformedFileError(source, "expected a JSON array of transactions")

    records: list[RawRecord] = []
    rejected: list[str] = []

    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            rejected.append(f"item {index}: not an object")
            continue
        try:
            txn = JsonTransaction.model_validate(
                _with_split_amount(item), context={"reference_year": reference_year}
            )
        except ValidationError as e:
            reasons = "; ".join(err["msg"] for err in e.errors())
            rejected.append(f"item {index}: {reasons}")
            continue

        records.append(
            RawRecord(
                date=txn.txn_date,
                description=txn.description,
                amount=txn.amount,
                balance=txn.balance,
                account=txn.account,
                raw_date=_raw_date(item),
            )
        )

    logger.info(f"Accepted {len(records)} JSON transactions, rejected {len(rejected)}")
    return records, rejected
