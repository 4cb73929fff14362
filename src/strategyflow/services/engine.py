"""Strategy reconstruction engine.

Walks sequenced event groups left to right. Inside each group closing records are allocated
first (FIFO against the shared inventory ledger), then opening records create or extend a
strategy. A group that both closes an existing leg and opens new ones is a roll: the new legs
join the strategy that owned the first consumed leg.

The whole run is a pure function of its input list; every call owns its own ledger and
strategy book.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..core.legs import ZERO, ClosedDetail, EngineResult, Leg, Strategy
from ..core.models import INVALID_DATE, TransactionRecord, to_naive_utc
from ..core.parser import prepare_records
from .grouping import EventGroup, group_events, sequence_events
from .inventory import InventoryLedger
from .lifecycle import finalize_strategies, latest_timestamp

logger = logging.getLogger(__name__)

CASH_SETTLED_LABEL = "CASH SETTLED"
PRORATED_SETTLEMENT_LABELS = {"ASSIGNED", "EXERCISED"}


def synthesize_strategy_id(timestamp: Optional[datetime]) -> str:
    """Identifier for strategies whose opening records carry no order number."""
    if timestamp is None:
        return f"AUTO-{INVALID_DATE}"
    epoch_ms = int(to_naive_utc(timestamp).replace(tzinfo=timezone.utc).timestamp() * 1000)
    return f"AUTO-{epoch_ms}"


def _close_amounts(
    record: TransactionRecord, label: str, proportion: Decimal
) -> tuple[Decimal, Decimal]:
    """
    Return ``(total_for_pl, portion_total)`` for one consumed ledger entry.

    ``total_for_pl`` is multiplied by ``proportion`` again when it is attributed to the
    strategy, so assignment and exercise amounts are prorated twice when a single record
    spans several ledger entries. ``portion_total`` is the display amount on the leg.
    """
    if label == CASH_SETTLED_LABEL:
        return record.total, record.total
    if label in PRORATED_SETTLEMENT_LABELS:
        prorated = record.total * proportion
        return prorated, prorated
    portion_total = record.total * proportion if record.total > 0 else ZERO
    return record.total, portion_total


class StrategyEngine:
    """Single-use reconstruction run over one batch of records."""

    def __init__(self) -> None:
        self.ledger = InventoryLedger()
        self.strategies: Dict[str, Strategy] = {}

    def run(self, records: Sequence[TransactionRecord]) -> List[Strategy]:
        groups = sequence_events(group_events(records))
        logger.debug("Processing %d records in %d event groups", len(records), len(groups))
        for group in groups:
            self.process_group(group)
        return finalize_strategies(self.strategies.values(), latest_timestamp(records))

    def process_group(self, group: EventGroup) -> None:
        has_open = group.has_open
        has_close = group.has_close
        target_strategy_id: Optional[str] = None

        if has_close:
            is_roll_event = has_open
            for record in group.closing_records:
                matched = self.allocate_close(record, is_roll_event=is_roll_event)
                if target_strategy_id is None:
                    target_strategy_id = matched

        if has_open:
            self.allocate_open(group, target_strategy_id if has_close else None)

    def allocate_close(self, record: TransactionRecord, *, is_roll_event: bool) -> Optional[str]:
        """
        Consume open inventory for one closing record.

        Returns the strategy id owning the first consumed entry, or ``None`` when nothing
        matched. Records with zero quantity or zero total (e.g. removal rows) are no-ops.
        """
        close_qty = record.close_quantity
        if close_qty == 0 or record.total == 0:
            return None

        label = record.close_label
        remaining = close_qty
        first_strategy_id: Optional[str] = None

        for entry in self.ledger.open_entries(record.contract_id):
            if remaining <= 0:
                break
            if first_strategy_id is None:
                first_strategy_id = entry.strategy_id

            taken = min(remaining, entry.remaining_qty)
            entry.leg.consume(taken)
            proportion = taken / close_qty
            total_for_pl, portion_total = _close_amounts(record, label, proportion)
            portion_fees = record.total_fees * proportion

            entry.leg.record_close(
                ClosedDetail(
                    date=record.timestamp,
                    price=record.price,
                    action=label,
                    total=portion_total,
                    fees=portion_fees,
                )
            )

            strategy = self.strategies[entry.strategy_id]
            strategy.total_pl += total_for_pl * proportion
            strategy.fees += portion_fees
            if is_roll_event:
                strategy.is_rolled = True
                strategy.add_order_id(record.order_id)

            remaining -= taken

        if remaining > 0:
            logger.warning(
                "Closing record for %s left %s contracts without open inventory",
                record.contract_id,
                remaining,
            )
        return first_strategy_id

    def allocate_open(self, group: EventGroup, roll_target_id: Optional[str]) -> Strategy:
        """Create or extend a strategy and add one leg per opening record."""
        opening = group.opening_records
        first = opening[0]

        strategy: Optional[Strategy] = None
        if roll_target_id is not None:
            strategy = self.strategies.get(roll_target_id)

        if strategy is None:
            strategy_id = first.order_id or synthesize_strategy_id(first.timestamp)
            strategy = self.strategies.get(strategy_id)
            if strategy is None:
                strategy = Strategy(
                    id=strategy_id,
                    underlying=first.underlying,
                    date_open=first.timestamp,
                )
                self.strategies[strategy_id] = strategy
            strategy.add_order_id(first.order_id)

        for record in opening:
            leg = Leg(
                contract_id=record.contract_id,
                option_type=record.option_type,
                action=record.action,
                quantity=record.close_quantity,
                open_price=record.price,
                strike=record.strike,
                expiration=record.expiration,
                open_date=record.timestamp,
                cost_basis=record.total,
                remaining_qty=record.close_quantity,
            )
            strategy.legs.append(leg)
            strategy.total_pl += record.total
            strategy.fees += record.total_fees
            self.ledger.add(strategy.id, leg)

        return strategy


def build_strategies(records: Iterable[TransactionRecord]) -> List[Strategy]:
    """Reconstruct strategies from normalized records, newest-opened first."""
    return StrategyEngine().run(list(records))


def reconstruct(
    records: Iterable[TransactionRecord], *, initial_balance: Decimal = ZERO
) -> EngineResult:
    return EngineResult(initial_balance=initial_balance, strategies=build_strategies(records))


def process_trade_rows(rows: Iterable[Mapping[str, str]]) -> EngineResult:
    """
    Full pipeline from header-keyed rows to strategies.

    Deposits and withdrawals feed ``initial_balance`` and are kept out of the event stream.
    """
    batch = prepare_records(rows)
    return reconstruct(batch.records, initial_balance=batch.initial_balance)
