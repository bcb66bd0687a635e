from __future__ import annotations

import io
import zipfile
from typing import Any, Dict, List
import pandas as pd
from openpyxl.chart import BarChart, Reference

TRADE_COLUMNS = [
    "id",
    "ticker",
    "asset_type",
    "side",
    "quantity",
    "price",
    "trade_date",
    "external_id",
]

TICKER_SUMMARY_COLUMNS = [
    "Ticker",
    "BuyNotional",
    "SellNotional",
    "Trades",
    "BuyQty",
    "SellQty",
    "NetQty",
]

OVERALL_COLUMNS = ["Trades", "Tickers", "BuyNotional", "SellNotional", "FirstTrade", "LastTrade"]


def summarize_trades(trades: List[Dict[str, Any]]) -> Dict[str, pd.DataFrame]:
    """Build the trades table plus per-ticker and overall summaries."""
    df = pd.DataFrame(trades)
    if df.empty:
        return {
            "trades": pd.DataFrame(columns=TRADE_COLUMNS),
            "ticker_summary": pd.DataFrame(columns=TICKER_SUMMARY_COLUMNS),
            "overall_summary": pd.DataFrame(
                [{"Trades": 0, "Tickers": 0, "BuyNotional": 0.0, "SellNotional": 0.0, "FirstTrade": "", "LastTrade": ""}],
                columns=OVERALL_COLUMNS,
            ),
        }

    cols = [c for c in TRADE_COLUMNS if c in df.columns]
    df = df[cols].sort_values([c for c in ("trade_date", "id") if c in cols])
    notional = df["quantity"] * df["price"]
    is_buy = df["side"] == "buy"
    work = df.assign(
        BuyNotional=notional.where(is_buy, 0.0),
        SellNotional=notional.where(~is_buy, 0.0),
        BuyQty=df["quantity"].where(is_buy, 0.0),
        SellQty=df["quantity"].where(~is_buy, 0.0),
    )

    per_ticker = (
        work.groupby("ticker")
        .agg(
            BuyNotional=("BuyNotional", "sum"),
            SellNotional=("SellNotional", "sum"),
            Trades=("side", "size"),
            BuyQty=("BuyQty", "sum"),
            SellQty=("SellQty", "sum"),
        )
        .reset_index()
        .rename(columns={"ticker": "Ticker"})
    )
    per_ticker["NetQty"] = per_ticker["BuyQty"] - per_ticker["SellQty"]
    per_ticker = per_ticker[TICKER_SUMMARY_COLUMNS]

    overall = pd.DataFrame(
        [
            {
                "Trades": int(len(df)),
                "Tickers": int(df["ticker"].nunique()),
                "BuyNotional": float(work["BuyNotional"].sum()),
                "SellNotional": float(work["SellNotional"].sum()),
                "FirstTrade": df["trade_date"].min(),
                "LastTrade": df["trade_date"].max(),
            }
        ],
        columns=OVERALL_COLUMNS,
    )

    return {
        "trades": df.reset_index(drop=True),
        "ticker_summary": per_ticker,
        "overall_summary": overall,
    }


def dataframes_to_csv_bytes(results: Dict[str, Any]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name in [
            ("trades.csv", results["trades"]),
            ("ticker_summary.csv", results["ticker_summary"]),
            ("overall_summary.csv", results["overall_summary"]),
        ]:
            zf.writestr(name[0], name[1].to_csv(index=False))
    return buf.getvalue()


def dataframes_to_excel_bytes(results: Dict[str, Any]) -> bytes:
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        results["trades"].to_excel(writer, index=False, sheet_name="Trades")
        results["ticker_summary"].to_excel(writer, index=False, sheet_name="TickerSummary")
        results["overall_summary"].to_excel(writer, index=False, sheet_name="OverallSummary")

        _add_ticker_charts(writer.book, results["ticker_summary"])

    return buf.getvalue()


def _add_ticker_charts(workbook, ticker_df: pd.DataFrame):
    """Add buy vs sell notional bar chart to TickerSummary sheet"""
    if ticker_df.empty:
        return

    ws = workbook["TickerSummary"]
    num_rows = len(ticker_df)

    chart = BarChart()
    chart.type = "col"
    chart.style = 10
    chart.title = "Buy vs Sell Notional by Ticker"
    chart.y_axis.title = "Notional"
    chart.x_axis.title = "Ticker"

    # Ticker in col A, BuyNotional in col B, SellNotional in col C
    data = Reference(ws, min_col=2, min_row=1, max_row=num_rows + 1, max_col=3)
    cats = Reference(ws, min_col=1, min_row=2, max_row=num_rows + 1)

    chart.add_data(data, titles_from_data=True)
    chart.set_categories(cats)
    chart.shape = 4

    ws.add_chart(chart, f"A{num_rows + 4}")
