from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..parsing.mapping import BrokerId


class AssetType(str, Enum):
    STOCK = "stock"
    OPTION = "option"
    FUTURE = "future"


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass
class NormalizedTrade:
    ticker: str
    asset_type: AssetType
    side: Side
    quantity: float
    price: float
    trade_date: str  # ISO-8601, UTC
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["asset_type"] = self.asset_type.value
        d["side"] = self.side.value
        return d


@dataclass
class RowOutcome:
    """Result of normalizing one row: either a trade or the reason there is none."""

    trade: Optional[NormalizedTrade] = None
    reason: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.trade is None) == (self.reason is None):
            raise ValueError("RowOutcome needs exactly one of trade or reason")

    @classmethod
    def ok(cls, trade: NormalizedTrade) -> "RowOutcome":
        return cls(trade=trade)

    @classmethod
    def rejected(cls, reason: str) -> "RowOutcome":
        return cls(reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.trade is not None


@dataclass
class ParseResult:
    trades: List[NormalizedTrade] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    broker: Optional[BrokerId] = None
    row_count: int = 0
    # {"row": n, "reason": ...} per rejected row, for logs and debugging views
    rejections: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "broker": self.broker.value if self.broker else None,
            "row_count": self.row_count,
            "trades": [t.to_dict() for t in self.trades],
            "errors": list(self.errors),
            "rejections": list(self.rejections),
        }


def _fmt_number(x: float) -> str:
    # 10.0 -> "10", 150.5 -> "150.5"
    return str(int(x)) if float(x).is_integer() else repr(float(x))


def external_id_for(trade: NormalizedTrade) -> str:
    """Dedup key identifying the same trade across re-imports."""
    return "_".join(
        [
            trade.ticker,
            trade.trade_date,
            trade.side.value,
            _fmt_number(trade.quantity),
            _fmt_number(trade.price),
        ]
    )
