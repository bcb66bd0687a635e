import io
import zipfile

import pandas as pd
from openpyxl import load_workbook

from tradejournal.reports.export import (
    dataframes_to_csv_bytes,
    dataframes_to_excel_bytes,
    summarize_trades,
)


def row(id, ticker, side, qty, price, td):
    return {
        "id": id,
        "user_id": "u1",
        "ticker": ticker,
        "asset_type": "stock",
        "side": side,
        "quantity": qty,
        "price": price,
        "trade_date": td,
        "metadata": {},
        "external_id": f"{ticker}_{td}",
    }


ROWS = [
    row(1, "AAPL", "buy", 10, 100, "2024-01-02T00:00:00.000Z"),
    row(2, "AAPL", "sell", 4, 120, "2024-02-02T00:00:00.000Z"),
    row(3, "MSFT", "buy", 2, 400, "2024-01-15T00:00:00.000Z"),
]


def test_summarize_trades():
    res = summarize_trades(ROWS)
    ts = res["ticker_summary"].set_index("Ticker")
    assert ts.loc["AAPL", "BuyNotional"] == 1000
    assert ts.loc["AAPL", "SellNotional"] == 480
    assert ts.loc["AAPL", "Trades"] == 2
    assert ts.loc["AAPL", "NetQty"] == 6
    assert ts.loc["MSFT", "SellQty"] == 0
    overall = res["overall_summary"].iloc[0]
    assert overall["Trades"] == 3
    assert overall["Tickers"] == 2
    assert overall["BuyNotional"] == 1800
    assert overall["FirstTrade"] == "2024-01-02T00:00:00.000Z"
    assert overall["LastTrade"] == "2024-02-02T00:00:00.000Z"
    assert list(res["trades"]["id"]) == [1, 3, 2]


def test_summarize_empty():
    res = summarize_trades([])
    assert res["trades"].empty
    assert res["ticker_summary"].empty
    assert res["overall_summary"].iloc[0]["Trades"] == 0


def test_csv_zip_contents():
    data = dataframes_to_csv_bytes(summarize_trades(ROWS))
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert sorted(zf.namelist()) == ["overall_summary.csv", "ticker_summary.csv", "trades.csv"]
        trades = pd.read_csv(zf.open("trades.csv"))
    assert len(trades) == 3


def test_excel_workbook_has_sheets_and_chart():
    wb = load_workbook(io.BytesIO(dataframes_to_excel_bytes(summarize_trades(ROWS))))
    assert wb.sheetnames == ["Trades", "TickerSummary", "OverallSummary"]
    assert wb["TickerSummary"]["A1"].value == "Ticker"
    assert wb["TickerSummary"].max_row == 3


def test_excel_workbook_empty():
    wb = load_workbook(io.BytesIO(dataframes_to_excel_bytes(summarize_trades([]))))
    assert wb["Trades"].max_row == 1
