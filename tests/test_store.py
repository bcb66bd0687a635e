import pytest

from tradejournal.core.models import AssetType, NormalizedTrade, Side
from tradejournal.core.store import NoteNotFound, TagNotFound, TradeNotFound, TradeStore


def trade(ticker="AAPL", side=Side.BUY, qty=10.0, price=150.0, td="2024-01-02T00:00:00.000Z", asset=AssetType.STOCK):
    return NormalizedTrade(
        ticker=ticker,
        asset_type=asset,
        side=side,
        quantity=qty,
        price=price,
        trade_date=td,
        metadata={"broker": "generic"},
    )


def test_add_assigns_ids_and_external_id():
    store = TradeStore()
    a = store.add_trade("u1", trade())
    b = store.add_trade("u1", trade(ticker="MSFT"))
    assert (a.id, b.id) == (1, 2)
    assert a.external_id == "AAPL_2024-01-02T00:00:00.000Z_buy_10_150"
    assert a.created_at == a.modified_at
    assert store.find_trade_by_external_id("u1", a.external_id) is a
    assert store.find_trade_by_external_id("u2", a.external_id) is None


def test_trades_scoped_by_owner_and_sorted_newest_first():
    store = TradeStore()
    store.add_trade("u1", trade(td="2024-01-01T00:00:00.000Z"))
    store.add_trade("u1", trade(td="2024-03-01T00:00:00.000Z", asset=AssetType.OPTION))
    store.add_trade("u2", trade(td="2024-02-01T00:00:00.000Z"))
    got = store.get_trades_by_user("u1")
    assert [t.trade_date[:10] for t in got] == ["2024-03-01", "2024-01-01"]
    assert [t.asset_type for t in store.get_trades_by_user("u1", "option")] == ["option"]
    with pytest.raises(TradeNotFound):
        store.get_trade("u2", got[0].id)


def test_update_trade():
    store = TradeStore()
    t = store.add_trade("u1", trade())
    updated = store.update_trade("u1", t.id, {"price": 151.0, "side": "sell"})
    assert updated.price == 151.0
    assert updated.side == "sell"
    with pytest.raises(ValueError):
        store.update_trade("u1", t.id, {"user_id": "u2"})
    with pytest.raises(TradeNotFound):
        store.update_trade("u2", t.id, {"price": 1.0})


def test_delete_trade_cascades_tags_and_notes():
    store = TradeStore()
    t = store.add_trade("u1", trade())
    other = store.add_trade("u1", trade(ticker="MSFT"))
    store.add_tag("u1", t.id, "earnings")
    keep = store.add_tag("u1", other.id, "swing")
    store.upsert_note("u1", t.id, "chased the gap")
    store.delete_trade("u1", t.id)
    with pytest.raises(TradeNotFound):
        store.get_trade("u1", t.id)
    assert store.get_tags_by_trade("u1", other.id) == [keep]
    with pytest.raises(TradeNotFound):
        store.get_note_by_trade("u1", t.id)


def test_tags_and_notes():
    store = TradeStore()
    t = store.add_trade("u1", trade())
    tag = store.add_tag("u1", t.id, "scalp")
    assert [x.tag for x in store.get_tags_by_trade("u1", t.id)] == ["scalp"]
    with pytest.raises(TagNotFound):
        store.delete_tag("u2", tag.id)
    store.delete_tag("u1", tag.id)
    assert store.get_tags_by_trade("u1", t.id) == []

    assert store.get_note_by_trade("u1", t.id) is None
    n1 = store.upsert_note("u1", t.id, "first")
    n2 = store.upsert_note("u1", t.id, "second")
    assert n1.id == n2.id
    assert store.get_note_by_trade("u1", t.id).text == "second"
    with pytest.raises(NoteNotFound):
        store.delete_note("u1", 999)
    store.delete_note("u1", n1.id)
    assert store.get_note_by_trade("u1", t.id) is None
