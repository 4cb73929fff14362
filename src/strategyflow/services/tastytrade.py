"""Map tastytrade API transaction objects into CSV-shaped rows.

The engine's ingestion path expects the column names of a tastytrade CSV export. The helpers
here translate API payloads (kebab-case keys, unsigned amounts with a separate debit/credit
effect flag, OCC option symbols) into exactly that row shape so both sources share one
normalization step.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.parser import normalize_action

ZERO = Decimal("0")
OPTION_MULTIPLIER = Decimal("100")
STRIKE_SCALE = Decimal("1000")

FEE_FIELDS = (
    ("regulatory-fees", "regulatory-fees-effect"),
    ("clearing-fees", "clearing-fees-effect"),
    ("proprietary-index-option-fees", "proprietary-index-option-fees-effect"),
    ("currency-conversion-fees", "currency-conversion-fees-effect"),
    ("other-charge", "other-charge-effect"),
)

ROW_COLUMNS = (
    "Date",
    "Type",
    "Sub Type",
    "Action",
    "Symbol",
    "Instrument Type",
    "Description",
    "Value",
    "Quantity",
    "Average Price",
    "Commissions",
    "Fees",
    "Multiplier",
    "Root Symbol",
    "Underlying Symbol",
    "Expiration Date",
    "Strike Price",
    "Call or Put",
    "Order #",
    "Total",
    "Currency",
)

_SPACED_SYMBOL = re.compile(r"^([A-Z0-9./_-]+)\s+(\d{6})([CP])(\d{8})$", re.IGNORECASE)
_COMPACT_SYMBOL = re.compile(r"^([A-Z0-9./_-]{1,8})(\d{6})([CP])(\d{8})$", re.IGNORECASE)
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_SHORT_US_DATE = re.compile(r"^\d{2}/\d{2}/\d{2}$")


def to_decimal(value: Any) -> Decimal:
    """Finite decimal or zero."""
    if value is None or value == "":
        return ZERO
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def format_numeric_field(value: Decimal) -> str:
    """Plain-notation string rounded to 8 places, with ``-0`` rendered as ``0``."""
    rounded = value.quantize(Decimal("0.00000001")).normalize()
    if rounded == 0:
        return "0"
    return format(rounded, "f")


def apply_value_effect(amount: Any, effect: Optional[str]) -> Decimal:
    """Sign an unsigned API amount: ``Debit`` is negative, ``Credit`` positive."""
    normalized = (effect or "").strip().lower() if isinstance(effect, str) else ""
    if normalized == "debit":
        return -abs(to_decimal(amount))
    if normalized == "credit":
        return abs(to_decimal(amount))
    return to_decimal(amount)


def _signed_price(price: Any, action: str, value_effect: Optional[str]) -> Decimal:
    magnitude = abs(to_decimal(price))
    if not magnitude:
        return ZERO
    if action.startswith("BUY"):
        return -magnitude
    if action.startswith("SELL"):
        return magnitude
    return apply_value_effect(magnitude, value_effect)


def to_short_date(value: Any) -> str:
    """Render an API date as ``MM/DD/YY``; unparseable input yields ``""``."""
    if not value:
        return ""
    text = str(value)
    if _SHORT_US_DATE.match(text):
        return text
    iso_match = _ISO_DATE.match(text)
    if iso_match:
        year, month, day = iso_match.groups()
        return f"{month}/{day}/{year[2:]}"
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%m/%d/%y")


def parse_option_symbol(symbol: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decompose an OCC option symbol such as ``SPY   240119C00450000``.

    Returns the underlying, ``MM/DD/YY`` expiration, strike (thousandths in the symbol) and
    ``CALL``/``PUT``; ``None`` for anything that is not an option symbol.
    """
    trimmed = (symbol or "").strip()
    if not trimmed:
        return None
    match = _SPACED_SYMBOL.match(trimmed) or _COMPACT_SYMBOL.match(trimmed)
    if not match:
        return None

    raw_underlying, yymmdd, cp_flag, strike_raw = match.groups()
    yy = int(yymmdd[:2])
    year = 1900 + yy if yy >= 70 else 2000 + yy
    return {
        "underlying": raw_underlying.strip(),
        "expiration_date": f"{yymmdd[2:4]}/{yymmdd[4:6]}/{str(year)[2:]}",
        "strike_price": Decimal(strike_raw) / STRIKE_SCALE,
        "call_or_put": "CALL" if cp_flag.upper() == "C" else "PUT",
    }


def sum_fee_components(transaction: Mapping[str, Any]) -> Decimal:
    return sum(
        (
            apply_value_effect(transaction.get(amount_field), transaction.get(effect_field))
            for amount_field, effect_field in FEE_FIELDS
        ),
        ZERO,
    )


def _resolve_underlying(transaction: Mapping[str, Any], parsed: Optional[Dict[str, Any]]) -> str:
    return (
        transaction.get("underlying-symbol")
        or transaction.get("underlyingSymbol")
        or (parsed or {}).get("underlying")
        or ""
    )


def map_transaction_to_row(transaction: Mapping[str, Any]) -> Dict[str, str]:
    """Translate one API transaction into the CSV export row shape."""
    raw_symbol = transaction.get("symbol") or ""
    parsed = parse_option_symbol(raw_symbol)
    action = normalize_action(transaction.get("action"))

    value = apply_value_effect(transaction.get("value"), transaction.get("value-effect"))
    commission = apply_value_effect(
        transaction.get("commission"), transaction.get("commission-effect")
    )
    fees = sum_fee_components(transaction)
    net_value = transaction.get("net-value")
    if net_value is not None and net_value != "":
        total = apply_value_effect(net_value, transaction.get("net-value-effect"))
    else:
        total = value + commission + fees

    instrument_type = transaction.get("instrument-type") or ""
    multiplier = to_decimal(transaction.get("multiplier")) or (
        OPTION_MULTIPLIER if "option" in instrument_type.lower() else Decimal("1")
    )
    quantity = abs(to_decimal(transaction.get("quantity")))
    average_price = _signed_price(transaction.get("price"), action, transaction.get("value-effect"))
    underlying = _resolve_underlying(transaction, parsed)

    if transaction.get("expiration-date"):
        expiration = to_short_date(transaction["expiration-date"])
    else:
        expiration = (parsed or {}).get("expiration_date", "")

    strike = transaction.get("strike-price")
    if strike is None:
        strike = (parsed or {}).get("strike_price", ZERO)

    order_id = transaction.get("order-id")

    return {
        "Date": transaction.get("executed-at") or transaction.get("transaction-date") or "",
        "Type": transaction.get("transaction-type") or "",
        "Sub Type": transaction.get("transaction-sub-type") or "",
        "Action": action,
        "Symbol": raw_symbol,
        "Instrument Type": instrument_type,
        "Description": transaction.get("description") or "",
        "Value": format_numeric_field(value),
        "Quantity": format_numeric_field(quantity),
        "Average Price": format_numeric_field(average_price),
        "Commissions": format_numeric_field(commission),
        "Fees": format_numeric_field(fees),
        "Multiplier": format_numeric_field(multiplier),
        "Root Symbol": (parsed or {}).get("underlying") or underlying,
        "Underlying Symbol": underlying,
        "Expiration Date": expiration,
        "Strike Price": format_numeric_field(to_decimal(strike)),
        "Call or Put": transaction.get("call-or-put") or (parsed or {}).get("call_or_put", ""),
        "Order #": str(order_id) if order_id else "",
        "Total": format_numeric_field(total),
        "Currency": transaction.get("currency") or "USD",
    }


def map_transactions_to_rows(transactions: Sequence[Mapping[str, Any]]) -> List[Dict[str, str]]:
    return [map_transaction_to_row(transaction) for transaction in transactions]

