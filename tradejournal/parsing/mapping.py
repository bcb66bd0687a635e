from enum import Enum
from typing import Dict, List, Tuple


class BrokerId(str, Enum):
    # Declaration order is detection priority; GENERIC must stay last
    ROBINHOOD = "robinhood"
    TD = "td"
    GENERIC = "generic"


# Canonical fields every profile has to resolve before a trade is emitted
REQUIRED_FIELDS: List[str] = [
    "ticker",
    "side",
    "quantity",
    "price",
    "trade_date",
]


def _variants(*names: str) -> List[str]:
    """Expand header names into the spellings brokers actually export."""
    out: List[str] = []
    for name in names:
        for v in (name, name.lower(), f"{name} ", f"{name.lower()} "):
            if v not in out:
                out.append(v)
    return out


# Map canonical field -> list of possible column names, per broker profile
COLUMN_MAPPING: Dict[BrokerId, Dict[str, List[str]]] = {
    BrokerId.ROBINHOOD: {
        "instrument": _variants("Instrument"),
        "description": _variants("Description"),
        "trans_code": _variants("Trans Code", "TransCode"),
        "quantity": _variants("Quantity"),
        "price": _variants("Price"),
        "trade_date": _variants("Activity Date", "ActivityDate"),
    },
    BrokerId.TD: {
        "ticker": ["Symbol", "symbol"],
        "side": ["Buy/Sell", "buy/sell"],
        "quantity": ["Quantity", "quantity"],
        "price": ["Price", "price"],
        "trade_date": ["Date", "date"],
    },
    BrokerId.GENERIC: {
        "ticker": ["Symbol", "symbol", "Ticker", "ticker"],
        "side": ["Side", "side", "Type", "type"],
        "quantity": ["Quantity", "quantity", "Qty", "qty"],
        "price": ["Price", "price"],
        "trade_date": ["Date", "date", "Time", "time"],
    },
}


# Substrings searched for in lower-cased header names
BROKER_NAME_SIGNALS: Dict[BrokerId, Tuple[str, ...]] = {
    BrokerId.ROBINHOOD: ("robinhood",),
    BrokerId.TD: ("td", "ameritrade"),
}

BROKER_COLUMN_SIGNALS: Dict[BrokerId, Tuple[str, ...]] = {
    BrokerId.ROBINHOOD: ("activity date", "trans code", "instrument"),
}

# Robinhood transaction codes that close a long or open a short
ROBINHOOD_SELL_CODES = frozenset({"STC", "STO"})
