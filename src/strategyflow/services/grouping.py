"""Event grouping and chronological sequencing.

Records that share a broker order number form one event. Records without an order number
are grouped by contract and exact timestamp, so simultaneous lifecycle rows on the same
contract (a cash settlement plus its zero-amount removal, for example) travel together.

Only those correlationless groups get a tie-break ordering; order-number groups keep the
order the broker reported. Matching downstream is order sensitive, so both sorts here are
stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.models import INVALID_DATE, TransactionRecord

TIER_CASH_SETTLED = 0
TIER_TRADE = 1
TIER_LIFECYCLE = 2

GroupKey = Tuple[str, str]


@dataclass(frozen=True)
class EventGroup:
    """Records that are processed together as one trading event."""

    records: Tuple[TransactionRecord, ...]
    correlated: bool

    @property
    def first(self) -> TransactionRecord:
        return self.records[0]

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.first.timestamp

    @property
    def order_id(self) -> Optional[str]:
        return self.first.order_id

    @property
    def opening_records(self) -> List[TransactionRecord]:
        return [record for record in self.records if record.is_opening]

    @property
    def closing_records(self) -> List[TransactionRecord]:
        return [record for record in self.records if record.is_closing]

    @property
    def has_open(self) -> bool:
        return any(record.is_opening for record in self.records)

    @property
    def has_close(self) -> bool:
        return any(record.is_closing for record in self.records)


def tie_break_tier(record: TransactionRecord) -> int:
    """Priority tier for records sharing a contract and instant without an order number."""
    if record.is_cash_settled:
        return TIER_CASH_SETTLED
    if record.action and not record.is_lifecycle:
        return TIER_TRADE
    return TIER_LIFECYCLE


def apply_tie_break_policy(
    records: Sequence[TransactionRecord], *, correlated: bool
) -> Tuple[TransactionRecord, ...]:
    """
    Order the records inside one group.

    Broker-correlated groups are returned untouched: the broker's own row order within an
    order is authoritative. Correlationless groups are stably sorted cash settlement first,
    then ordinary trades, then expiration/assignment/exercise rows.
    """
    if correlated:
        return tuple(records)
    return tuple(sorted(records, key=tie_break_tier))


def _timestamp_key(record: TransactionRecord) -> str:
    if record.timestamp is None:
        return INVALID_DATE
    return record.timestamp.isoformat()


def group_events(records: Iterable[TransactionRecord]) -> List[EventGroup]:
    """Cluster records into event groups (order-number groups first, in first-seen order)."""
    by_order: Dict[str, List[TransactionRecord]] = {}
    by_contract_instant: Dict[GroupKey, List[TransactionRecord]] = {}

    for record in records:
        if record.order_id:
            by_order.setdefault(record.order_id, []).append(record)
        else:
            key = (record.contract_id, _timestamp_key(record))
            by_contract_instant.setdefault(key, []).append(record)

    groups = [
        EventGroup(records=apply_tie_break_policy(bucket, correlated=True), correlated=True)
        for bucket in by_order.values()
    ]
    groups.extend(
        EventGroup(records=apply_tie_break_policy(bucket, correlated=False), correlated=False)
        for bucket in by_contract_instant.values()
    )
    return groups


def _sequence_key(group: EventGroup) -> Tuple[int, datetime]:
    # Invalid dates sort ahead of every valid timestamp.
    if group.timestamp is None:
        return 0, datetime.min
    return 1, group.timestamp


def sequence_events(groups: Iterable[EventGroup]) -> List[EventGroup]:
    """Stable ascending sort by the timestamp of each group's first record."""
    return sorted(groups, key=_sequence_key)
