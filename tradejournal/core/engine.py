from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..parsing.coerce import clean_text, parse_number, parse_trade_date
from ..parsing.detect import detect_broker
from ..parsing.mapping import COLUMN_MAPPING, REQUIRED_FIELDS, ROBINHOOD_SELL_CODES, BrokerId
from ..parsing.reader import read_statement
from .models import AssetType, NormalizedTrade, ParseResult, RowOutcome, Side

logger = logging.getLogger(__name__)

RawRow = Dict[str, str]

_OPTION_WORDS = re.compile(r"\b(Call|Put)\b")


@dataclass(frozen=True)
class BrokerProfile:
    broker: BrokerId
    aliases: Dict[str, List[str]]
    extract: Callable[[RawRow, "BrokerProfile"], RowOutcome]


def _squash(name: str) -> str:
    return "".join(name.split()).lower()


def _find_field_value(row: RawRow, aliases: List[str]) -> Optional[str]:
    """First alias present with a non-empty value wins.

    Falls back to comparing headers with case and whitespace removed, so
    "TRANS CODE" or "Trans  Code" still resolve against "Trans Code".
    """
    for name in aliases:
        value = row.get(name)
        if value is not None and value != "":
            return value
    wanted = {_squash(a) for a in aliases}
    for header, value in row.items():
        if value and _squash(header) in wanted:
            return value
    return None


def _missing(**fields) -> List[str]:
    return [name for name in REQUIRED_FIELDS if fields.get(name) is None]


def _extract_robinhood(row: RawRow, profile: BrokerProfile) -> RowOutcome:
    a = profile.aliases
    instrument = clean_text(_find_field_value(row, a["instrument"]))
    description = clean_text(_find_field_value(row, a["description"]))
    trans_code = clean_text(_find_field_value(row, a["trans_code"]))
    quantity = parse_number(_find_field_value(row, a["quantity"]))
    price = parse_number(_find_field_value(row, a["price"]))
    trade_date = parse_trade_date(_find_field_value(row, a["trade_date"]))

    # "NOW 7/11/2025 Call $1,070.00" -> "NOW"
    ticker = description.split()[0] if description else instrument

    missing = _missing(ticker=ticker, side=trans_code, quantity=quantity, price=price, trade_date=trade_date)
    if missing:
        return RowOutcome.rejected(f"missing {', '.join(missing)}")

    side = Side.SELL if trans_code.upper() in ROBINHOOD_SELL_CODES else Side.BUY

    asset_type = AssetType.STOCK
    if description and _OPTION_WORDS.search(description):
        asset_type = AssetType.OPTION
    elif description and "/" in description:
        asset_type = AssetType.FUTURE

    return RowOutcome.ok(
        NormalizedTrade(
            ticker=ticker.upper(),
            asset_type=asset_type,
            side=side,
            quantity=abs(quantity),
            price=abs(price),
            trade_date=trade_date,
            metadata={
                "broker": profile.broker.value,
                "trans_code": trans_code,
                "description": description,
                "original_data": dict(row),
            },
        )
    )


def _extract_simple(row: RawRow, profile: BrokerProfile) -> RowOutcome:
    # Shared by td and generic; only the alias lists differ
    a = profile.aliases
    ticker = clean_text(_find_field_value(row, a["ticker"]))
    side_text = clean_text(_find_field_value(row, a["side"]))
    quantity = parse_number(_find_field_value(row, a["quantity"]))
    price = parse_number(_find_field_value(row, a["price"]))
    trade_date = parse_trade_date(_find_field_value(row, a["trade_date"]))

    missing = _missing(ticker=ticker, side=side_text, quantity=quantity, price=price, trade_date=trade_date)
    if missing:
        return RowOutcome.rejected(f"missing {', '.join(missing)}")

    return RowOutcome.ok(
        NormalizedTrade(
            ticker=ticker.upper(),
            asset_type=AssetType.STOCK,
            side=Side.BUY if "buy" in side_text.lower() else Side.SELL,
            quantity=abs(quantity),
            price=abs(price),
            trade_date=trade_date,
            metadata={
                "broker": profile.broker.value,
                "original_data": dict(row),
            },
        )
    )


PROFILES: Dict[BrokerId, BrokerProfile] = {
    BrokerId.ROBINHOOD: BrokerProfile(BrokerId.ROBINHOOD, COLUMN_MAPPING[BrokerId.ROBINHOOD], _extract_robinhood),
    BrokerId.TD: BrokerProfile(BrokerId.TD, COLUMN_MAPPING[BrokerId.TD], _extract_simple),
    BrokerId.GENERIC: BrokerProfile(BrokerId.GENERIC, COLUMN_MAPPING[BrokerId.GENERIC], _extract_simple),
}


def normalize_trade(row: RawRow, broker: BrokerId) -> RowOutcome:
    profile = PROFILES[BrokerId(broker)]
    try:
        return profile.extract(row, profile)
    except Exception as e:
        logger.warning("Error normalizing %s row %r: %s", profile.broker.value, row, e, exc_info=True)
        return RowOutcome.rejected(f"error: {e}")


def parse_csv(text: str) -> ParseResult:
    """Parse one broker CSV statement into normalized trades and user-facing errors."""
    result = ParseResult()
    try:
        statement = read_statement(text)
        for warning in statement.report.warnings:
            logger.warning("CSV: %s", warning)
        if statement.report.errors:
            result.errors.append(f"CSV parsing errors: {', '.join(statement.report.errors)}")

        if not statement.rows:
            result.errors.append("No data found in CSV file")
            return result

        broker = detect_broker(statement.fields)
        result.broker = broker
        result.row_count = len(statement.rows)
        logger.debug("Detected broker format: %s", broker.value)

        for idx, row in enumerate(statement.rows, start=1):
            outcome = normalize_trade(row, broker)
            if outcome.is_ok:
                result.trades.append(outcome.trade)
            else:
                logger.debug("Row %d rejected: %s", idx, outcome.reason)
                result.errors.append(f"Row {idx}: Could not parse trade data")
                result.rejections.append({"row": idx, "reason": outcome.reason})

        logger.info(
            "Parsed %d trades from %d rows (broker=%s)",
            len(result.trades),
            result.row_count,
            broker.value,
        )
    except Exception as e:
        logger.exception("Failed to parse CSV")
        result.errors.append(f"Failed to parse CSV: {e}")

    return result


def parse_csv_bytes(data: bytes, encoding: str = "utf-8-sig") -> ParseResult:
    try:
        text = data.decode(encoding)
    except UnicodeDecodeError as e:
        logger.warning("Upload is not valid %s: %s", encoding, e)
        return ParseResult(errors=[f"Failed to parse CSV: {e}"])
    return parse_csv(text)
