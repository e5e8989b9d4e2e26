"""Configuration loader and validation for reconciliation settings."""

from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_STOP_WORDS = [
    # Portuguese
    "pagamento",
    "pagto",
    "pgto",
    "transferencia",
    "transf",
    "parcela",
    "parc",
    "pix",
    "ted",
    "doc",
    "boleto",
    "compra",
    "debito",
    "credito",
    "recebimento",
    "de",
    "da",
    "do",
    "das",
    "dos",
    "para",
    "ref",
    # English
    "payment",
    "transfer",
    "installment",
    "purchase",
    "debit",
    "credit",
    "the",
    "of",
    "to",
    "from",
]


class InputConfig(BaseModel):
    """Configuration for input decoding and normalization."""

    encodings: list[str] = Field(
        default_factory=lambda: ["utf-8-sig", "utf-8", "cp1252", "latin-1"]
    )
    max_records: int = Field(default=5000, ge=1)
    # Year applied to "DD/MM" dates; when unset the current year is assumed
    # and the import reports the ambiguity.
    reference_year: Optional[int] = None
    delimiter_sample_lines: int = Field(default=10, ge=1)
    schema_sample_rows: int = Field(default=15, ge=1)
    placeholder_description: str = "No description"


class MatchingConfig(BaseModel):
    """Configuration for the matching engine."""

    tolerance_days: int = Field(default=3, ge=0)
    tolerance_value: Decimal = Field(default=Decimal("0.01"), ge=0)
    fuzzy_threshold: float = Field(default=0.6, ge=0, le=1)
    group_threshold: float = Field(default=0.65, ge=0, le=1)
    tolerance_score_floor: float = Field(default=0.7, ge=0, le=1)
    similarity_max_length: int = Field(default=100, ge=1)
    stop_words: list[str] = Field(default_factory=lambda: list(DEFAULT_STOP_WORDS))


class SessionConfig(BaseModel):
    """Descriptive metadata carried into exports."""

    company: str = ""
    bank: str = ""
    currency: str = "BRL"
    notes: str = ""


class SheetsConfig(BaseModel):
    """Sheet names for the Excel report."""

    summary: str = "Summary"
    exact: str = "Exact Matches"
    tolerance: str = "Tolerance Matches"
    fuzzy: str = "Fuzzy Matches"
    group: str = "Group Matches"
    pending_bank: str = "Pending Bank"
    pending_ledger: str = "Pending Ledger"


class OutputConfig(BaseModel):
    """Configuration for output files."""

    excel_filename_template: str = "reconciliation_report_{date}_{time}.xlsx"
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a plain dictionary."""
    defaults = ReconConfig().model_dump(mode="json", exclude={"config_file_path"})
    # Keep the tolerance readable in generated YAML
    defaults["matching"]["tolerance_value"] = float(
        defaults["matching"]["tolerance_value"]
    )
    return defaults


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or holds invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {config_path}"
            )

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    yaml_content = """# Bank statement / ledger reconciliation configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.safe_dump(
        get_default_config(), default_flow_style=False, sort_keys=False, allow_unicode=True
    )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
