"""Global inventory of open legs, shared across strategies.

The ledger indexes every leg that still has open quantity by contract id. A closing record
may consume legs opened under any order number, which is what lets the engine detect rolls
and treat separately opened lots of the same contract as fungible.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterator, List

from ..core.legs import Leg


@dataclass(frozen=True)
class InventoryEntry:
    """Binds an open leg to the strategy that owns it."""

    contract_id: str
    strategy_id: str
    leg: Leg

    @property
    def remaining_qty(self) -> Decimal:
        return self.leg.remaining_qty


class InventoryLedger:
    """Contract id -> entries in insertion (oldest-opened first) order."""

    def __init__(self) -> None:
        self._index: Dict[str, List[InventoryEntry]] = defaultdict(list)
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def add(self, strategy_id: str, leg: Leg) -> InventoryEntry:
        entry = InventoryEntry(contract_id=leg.contract_id, strategy_id=strategy_id, leg=leg)
        self._index[leg.contract_id].append(entry)
        self._size += 1
        return entry

    def open_entries(self, contract_id: str) -> List[InventoryEntry]:
        """Entries for ``contract_id`` with quantity left, FIFO order."""
        return [entry for entry in self._index.get(contract_id, ()) if entry.remaining_qty > 0]

    def entries(self) -> Iterator[InventoryEntry]:
        for bucket in self._index.values():
            yield from bucket
