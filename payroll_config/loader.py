"""
Rate Table Loader (``payroll_config.loader``).

Responsibility
--------------
Loads a YAML rate table document and parses it into the frozen
``payroll_config.schema`` dataclasses.  Money and rates are read as
strings and converted with ``Decimal(str(value))`` so no value ever
passes through float.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends only on the schema
and the kernel exceptions; has no dependency on engines or modules.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document; the checksum is stored on the resulting ``RateTable``.
* The parsed table is validated before it is returned.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys or unparsable numbers  -> ``RateTableError``.
* Structurally invalid table  -> ``RateTableError`` from the validator.

Audit relevance
---------------
The checksum lets an auditor confirm which statutory table produced a
given payroll run.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import (
    AllowanceCaps,
    AnnualLeaveRule,
    INSSRates,
    IRTBracket,
    NoticeSchedule,
    OvertimePremiums,
    RateTable,
    SeveranceSchedule,
    SubsidyRates,
)
from payroll_config.validator import validate_rate_table
from payroll_kernel.exceptions import RateTableError
from payroll_kernel.logging_config import get_logger

logger = get_logger("config.loader")

TABLES_DIR = Path(__file__).parent / "tables"
DEFAULT_TABLE = "angola_2024"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        raise ValueError(f"Quote decimal values in YAML, got float {value!r}")
    return Decimal(str(value))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_bracket(data: dict[str, Any]) -> IRTBracket:
    max_amount = data.get("max")
    return IRTBracket(
        min_amount=parse_decimal(data["min"]),
        max_amount=parse_decimal(max_amount) if max_amount is not None else None,
        rate=parse_decimal(data["rate"]),
        fixed_amount=parse_decimal(data.get("fixed", "0")),
    )


def parse_rate_table(data: dict[str, Any]) -> RateTable:
    """Parse a ``RateTable`` from a loaded YAML document.

    Raises:
        RateTableError: A required key is missing or a value cannot be
            parsed.  The table is not validated here.
    """
    name = str(data.get("name", "<unnamed>"))
    try:
        irt = data["irt"]
        inss = data["inss"]
        overtime = data["overtime"]
        allowances = data["allowances"]
        subsidies = data["subsidies"]
        severance = data["severance"]
        notice = data["notice"]
        leave = data["annual_leave"]

        return RateTable(
            name=name,
            jurisdiction=data["jurisdiction"],
            currency=data.get("currency", "AOA"),
            legal_reference=data.get("legal_reference", ""),
            effective_from=parse_date(data["effective_from"]),
            irt_brackets=tuple(parse_bracket(b) for b in irt["brackets"]),
            irt_exemption_ceiling=parse_decimal(irt["exemption_ceiling"]),
            inss=INSSRates(
                employee_rate=parse_decimal(inss["employee_rate"]),
                employer_rate=parse_decimal(inss["employer_rate"]),
                retired_employee_rate=parse_decimal(
                    inss.get("retired_employee_rate", "0")
                ),
                legal_reference=inss.get("legal_reference", ""),
            ),
            overtime=OvertimePremiums(
                normal_first_tier=parse_decimal(overtime["normal_first_tier"]),
                normal_second_tier=parse_decimal(overtime["normal_second_tier"]),
                normal_tier_threshold_hours=parse_decimal(
                    overtime["normal_tier_threshold_hours"]
                ),
                night=parse_decimal(overtime["night"]),
                holiday=parse_decimal(overtime["holiday"]),
            ),
            allowances=AllowanceCaps(
                meal_exempt_cap=parse_decimal(allowances["meal_exempt_cap"]),
                transport_exempt_cap=parse_decimal(allowances["transport_exempt_cap"]),
                family_allowance_per_dependent=parse_decimal(
                    allowances["family_allowance_per_dependent"]
                ),
                family_allowance_max_dependents=int(
                    allowances["family_allowance_max_dependents"]
                ),
            ),
            subsidies=SubsidyRates(
                thirteenth_month=parse_decimal(subsidies["thirteenth_month"]),
                holiday=parse_decimal(subsidies["holiday"]),
                termination_thirteenth_month=parse_decimal(
                    subsidies["termination"]["thirteenth_month"]
                ),
                termination_holiday=parse_decimal(subsidies["termination"]["holiday"]),
            ),
            severance=SeveranceSchedule(
                full_rate_years=int(severance["full_rate_years"]),
                full_rate=parse_decimal(severance["full_rate"]),
                reduced_rate=parse_decimal(severance["reduced_rate"]),
                contract_end_factor=parse_decimal(severance["contract_end_factor"]),
                partial_year_threshold_months=int(
                    severance["partial_year_threshold_months"]
                ),
            ),
            notice=NoticeSchedule(
                under_one_year_days=int(notice["under_one_year_days"]),
                up_to_three_years_days=int(notice["up_to_three_years_days"]),
                over_three_years_days=int(notice["over_three_years_days"]),
            ),
            annual_leave=AnnualLeaveRule(
                base_days=int(leave["base_days"]),
                extra_day_every_years=int(leave["extra_day_every_years"]),
                max_extra_days=int(leave["max_extra_days"]),
            ),
            checksum=compute_checksum(data),
        )
    except KeyError as exc:
        raise RateTableError(name, [f"missing key {exc.args[0]!r}"]) from exc
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise RateTableError(name, [f"unparsable value: {exc}"]) from exc


def load_rate_table(path: Path) -> RateTable:
    """Load, parse and validate a rate table YAML file."""
    table = parse_rate_table(load_yaml_file(path))
    validate_rate_table(table)
    logger.info(
        "rate_table_loaded",
        extra={
            "table_name": table.name,
            "effective_from": table.effective_from.isoformat(),
            "bracket_count": len(table.irt_brackets),
            "checksum": table.checksum,
        },
    )
    return table


_default_table: RateTable | None = None


def load_default_rate_table() -> RateTable:
    """Return the shipped Angolan table, loading it once per process."""
    global _default_table
    if _default_table is None:
        _default_table = load_rate_table(TABLES_DIR / f"{DEFAULT_TABLE}.yaml")
    return _default_table


def resolve_rate_table(table: RateTable | None) -> RateTable:
    """``table`` itself, or the shipped default when None."""
    return table if table is not None else load_default_rate_table()
