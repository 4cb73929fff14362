"""
CSV parsing and record normalization for strategy reconstruction.

This module turns broker transaction exports into :class:`TransactionRecord` objects. Parsing
is deliberately lenient: unparseable dates become ``None`` and non-numeric money fields
become zero, so a single bad row never aborts a run.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .models import CLOSE_SYSTEM_ACTION, LIFECYCLE_SUBTYPES, TransactionRecord, to_naive_utc

logger = logging.getLogger(__name__)

ZERO_DECIMAL = Decimal("0")
HEADER_DATE = "Date"
DEPOSIT_SUBTYPE = "Deposit"
WITHDRAWAL_SUBTYPE = "Withdrawal"

_BOM_CHARS = "\ufeff\ufffe"
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")
_ISO_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_US_TIMESTAMP_FORMATS = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%m/%d/%y %H:%M:%S",
    "%m/%d/%y %H:%M",
    "%m/%d/%y",
)
_EXPIRATION_FORMATS = ("%m/%d/%y", "%m/%d/%Y", "%Y-%m-%d")

Row = Dict[str, str]


@dataclass
class PreparedBatch:
    """Normalized engine input plus the balance derived from cash movements."""

    initial_balance: Decimal
    records: List[TransactionRecord]


def parse_csv_text(text: str) -> List[Row]:
    """
    Split delimited text into header-keyed rows of raw strings.

    A leading byte-order mark is dropped, quoted fields may contain commas, blank lines are
    skipped, and every value is whitespace-trimmed. Missing trailing cells become ``""``.
    """
    cleaned = text.lstrip(_BOM_CHARS)
    reader = csv.reader(io.StringIO(cleaned))
    try:
        header = next(reader)
    except StopIteration:
        return []
    fieldnames = [name.strip().lstrip(_BOM_CHARS) for name in header]

    rows: List[Row] = []
    for values in reader:
        if not any(value.strip() for value in values):
            continue
        row: Row = {}
        for index, name in enumerate(fieldnames):
            row[name] = values[index].strip() if index < len(values) else ""
        rows.append(row)
    return rows


def load_csv_rows(path: Union[str, Path]) -> List[Row]:
    """Read a CSV export from disk and return its rows."""
    with open(path, "r", encoding="utf-8-sig", newline="") as handle:
        return parse_csv_text(handle.read())


def safe_decimal(value: object) -> Decimal:
    """Lenient numeric parse: strips ``$`` and ``,``; anything unparseable becomes zero."""
    if value is None:
        return ZERO_DECIMAL
    if isinstance(value, Decimal):
        return value
    cleaned = str(value).replace("$", "").replace(",", "").strip()
    if not cleaned:
        return ZERO_DECIMAL
    try:
        parsed = Decimal(cleaned)
    except InvalidOperation:
        return ZERO_DECIMAL
    if not parsed.is_finite():
        return ZERO_DECIMAL
    return parsed


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an execution timestamp into a naive UTC datetime.

    Accepts ISO-8601 with or without an offset (``Z``, ``+00:00`` or ``-0500``) and US
    ``M/D/YYYY`` dates with an optional time. Returns ``None`` when nothing matches.
    """
    text = (value or "").strip()
    if not text:
        return None

    iso_text = text
    if iso_text.endswith("Z"):
        iso_text = iso_text[:-1] + "+00:00"
    if _ISO_DATE_PREFIX.match(iso_text) and len(iso_text) > 10:
        iso_text = _COMPACT_OFFSET.sub(r"\1:\2", iso_text)
    try:
        parsed = datetime.fromisoformat(iso_text)
    except ValueError:
        parsed = None

    if parsed is None:
        for fmt in _US_TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    return to_naive_utc(parsed)


def parse_expiration(value: Optional[str]) -> Optional[date]:
    """Parse an option expiration (``MM/DD/YY``, ``M/D/YYYY`` or ISO); ``None`` if invalid."""
    text = (value or "").strip()
    if not text:
        return None
    iso_match = _ISO_DATE_PREFIX.match(text)
    if iso_match:
        year, month, day = (int(part) for part in iso_match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    for fmt in _EXPIRATION_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def normalize_action(action: Optional[str]) -> str:
    """Upper-case an action and collapse separators: ``Sell to Open`` -> ``SELL_TO_OPEN``."""
    collapsed = re.sub(r"[^A-Z0-9]+", "_", (action or "").strip().upper())
    return collapsed.strip("_")


def is_lifecycle_subtype(sub_type: str) -> bool:
    return any(marker in sub_type for marker in LIFECYCLE_SUBTYPES)


def scan_initial_balance(rows: Iterable[Mapping[str, str]]) -> Decimal:
    """Sum deposits and subtract withdrawals to derive the starting balance."""
    deposits = ZERO_DECIMAL
    withdrawals = ZERO_DECIMAL
    for row in rows:
        sub_type = (row.get("Sub Type") or "").strip()
        value = safe_decimal(row.get("Value"))
        if sub_type == DEPOSIT_SUBTYPE:
            deposits += value
        elif sub_type == WITHDRAWAL_SUBTYPE:
            withdrawals += abs(value)
    return deposits - withdrawals


def is_engine_row(row: Mapping[str, str]) -> bool:
    """Keep trades and lifecycle events; drop cash movements, repeated headers and blanks."""
    raw_date = (row.get("Date") or "").strip()
    if not raw_date or raw_date == HEADER_DATE:
        return False
    has_action = bool((row.get("Action") or "").strip())
    return has_action or is_lifecycle_subtype(row.get("Sub Type") or "")


def normalize_row(row: Mapping[str, str]) -> TransactionRecord:
    """Validate a header-keyed row into a :class:`TransactionRecord`."""
    sub_type = (row.get("Sub Type") or "").strip()
    action = normalize_action(row.get("Action"))
    if is_lifecycle_subtype(sub_type) and "CLOSE" not in action:
        action = CLOSE_SYSTEM_ACTION

    raw_date = row.get("Date")
    timestamp = parse_timestamp(raw_date)
    if timestamp is None:
        logger.warning("Unparseable transaction date %r; keeping row with invalid date", raw_date)

    return TransactionRecord(
        timestamp=timestamp,
        action=action,
        sub_type=sub_type,
        symbol=row.get("Symbol") or "",
        underlying=row.get("Underlying Symbol") or "",
        strike=safe_decimal(row.get("Strike Price")),
        option_type=row.get("Call or Put") or "",
        expiration=parse_expiration(row.get("Expiration Date")),
        quantity=safe_decimal(row.get("Quantity")),
        price=safe_decimal(row.get("Average Price")),
        value=safe_decimal(row.get("Value")),
        total=safe_decimal(row.get("Total")),
        fees=safe_decimal(row.get("Fees")),
        commissions=safe_decimal(row.get("Commissions")),
        order_id=row.get("Order #"),
    )


def prepare_records(rows: Iterable[Mapping[str, str]]) -> PreparedBatch:
    """Run the balance pre-scan and normalize the rows the engine should see."""
    materialized = list(rows)
    initial_balance = scan_initial_balance(materialized)
    records = [normalize_row(row) for row in materialized if is_engine_row(row)]
    logger.debug(
        "Prepared %d engine records from %d rows (initial balance %s)",
        len(records),
        len(materialized),
        initial_balance,
    )
    return PreparedBatch(initial_balance=initial_balance, records=records)
