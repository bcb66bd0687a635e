from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import NormalizedTrade, external_id_for


class StoreError(KeyError):
    pass


class TradeNotFound(StoreError):
    pass


class TagNotFound(StoreError):
    pass


class NoteNotFound(StoreError):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StoredTrade:
    id: int
    user_id: str
    ticker: str
    asset_type: str
    side: str
    quantity: float
    price: float
    trade_date: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    external_id: Optional[str] = None
    created_at: str = ""
    modified_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Tag:
    id: int
    trade_id: int
    tag: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Note:
    id: int
    trade_id: int
    text: str
    created_at: str
    updated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


UPDATABLE_TRADE_FIELDS = ("ticker", "asset_type", "side", "quantity", "price", "trade_date", "metadata")


class TradeStore:
    """Per-owner trade journal kept in process memory.

    Ids are assigned from per-table counters and never reused. Every read
    and write is scoped to an owner id; a trade owned by someone else is
    reported as not found.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._trades: Dict[int, StoredTrade] = {}
        self._tags: Dict[int, Tag] = {}
        self._notes: Dict[int, Note] = {}
        self._next = {"trades": 1, "tags": 1, "notes": 1}

    def _new_id(self, table: str) -> int:
        nid = self._next[table]
        self._next[table] = nid + 1
        return nid

    def _owned_trade(self, user_id: str, trade_id: int) -> StoredTrade:
        trade = self._trades.get(trade_id)
        if trade is None or trade.user_id != user_id:
            raise TradeNotFound(trade_id)
        return trade

    # Trades

    def add_trade(self, user_id: str, trade: NormalizedTrade, external_id: Optional[str] = None) -> StoredTrade:
        now = _now()
        with self._lock:
            stored = StoredTrade(
                id=self._new_id("trades"),
                user_id=user_id,
                ticker=trade.ticker,
                asset_type=trade.asset_type.value,
                side=trade.side.value,
                quantity=trade.quantity,
                price=trade.price,
                trade_date=trade.trade_date,
                metadata=dict(trade.metadata),
                external_id=external_id if external_id is not None else external_id_for(trade),
                created_at=now,
                modified_at=now,
            )
            self._trades[stored.id] = stored
        return stored

    def add_trades(self, user_id: str, trades: List[NormalizedTrade]) -> List[StoredTrade]:
        return [self.add_trade(user_id, t) for t in trades]

    def get_trade(self, user_id: str, trade_id: int) -> StoredTrade:
        with self._lock:
            return self._owned_trade(user_id, trade_id)

    def get_trades_by_user(self, user_id: str, asset_type: Optional[str] = None) -> List[StoredTrade]:
        with self._lock:
            rows = [
                t
                for t in self._trades.values()
                if t.user_id == user_id and (asset_type is None or t.asset_type == asset_type)
            ]
        # newest first; id breaks ties so equal dates keep insert order reversed
        return sorted(rows, key=lambda t: (t.trade_date, t.id), reverse=True)

    def update_trade(self, user_id: str, trade_id: int, updates: Dict[str, Any]) -> StoredTrade:
        unknown = set(updates) - set(UPDATABLE_TRADE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        with self._lock:
            trade = self._owned_trade(user_id, trade_id)
            for k, v in updates.items():
                setattr(trade, k, v)
            trade.modified_at = _now()
            return trade

    def delete_trade(self, user_id: str, trade_id: int) -> None:
        with self._lock:
            self._owned_trade(user_id, trade_id)
            for tid in [k for k, v in self._tags.items() if v.trade_id == trade_id]:
                del self._tags[tid]
            for nid in [k for k, v in self._notes.items() if v.trade_id == trade_id]:
                del self._notes[nid]
            del self._trades[trade_id]

    def find_trade_by_external_id(self, user_id: str, external_id: str) -> Optional[StoredTrade]:
        with self._lock:
            for t in self._trades.values():
                if t.user_id == user_id and t.external_id == external_id:
                    return t
        return None

    # Tags

    def add_tag(self, user_id: str, trade_id: int, tag: str) -> Tag:
        with self._lock:
            self._owned_trade(user_id, trade_id)
            row = Tag(id=self._new_id("tags"), trade_id=trade_id, tag=tag, created_at=_now())
            self._tags[row.id] = row
            return row

    def get_tags_by_trade(self, user_id: str, trade_id: int) -> List[Tag]:
        with self._lock:
            self._owned_trade(user_id, trade_id)
            return [t for t in self._tags.values() if t.trade_id == trade_id]

    def delete_tag(self, user_id: str, tag_id: int) -> None:
        with self._lock:
            tag = self._tags.get(tag_id)
            if tag is None:
                raise TagNotFound(tag_id)
            try:
                self._owned_trade(user_id, tag.trade_id)
            except TradeNotFound:
                raise TagNotFound(tag_id) from None
            del self._tags[tag_id]

    # Notes (one per trade)

    def upsert_note(self, user_id: str, trade_id: int, text: str) -> Note:
        now = _now()
        with self._lock:
            self._owned_trade(user_id, trade_id)
            for note in self._notes.values():
                if note.trade_id == trade_id:
                    note.text = text
                    note.updated_at = now
                    return note
            note = Note(id=self._new_id("notes"), trade_id=trade_id, text=text, created_at=now, updated_at=now)
            self._notes[note.id] = note
            return note

    def get_note_by_trade(self, user_id: str, trade_id: int) -> Optional[Note]:
        with self._lock:
            self._owned_trade(user_id, trade_id)
            for note in self._notes.values():
                if note.trade_id == trade_id:
                    return note
        return None

    def delete_note(self, user_id: str, note_id: int) -> None:
        with self._lock:
            note = self._notes.get(note_id)
            if note is None:
                raise NoteNotFound(note_id)
            try:
                self._owned_trade(user_id, note.trade_id)
            except TradeNotFound:
                raise NoteNotFound(note_id) from None
            del self._notes[note_id]
