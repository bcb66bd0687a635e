from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, UploadFile, File, Header, HTTPException
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
import io
import logging

import pandas as pd

from .config import get_settings
from .logging_config import setup_logging
from .core.engine import parse_csv_bytes
from .core.models import AssetType, Side
from .core.store import StoreError, TradeStore
from .parsing.coerce import parse_trade_date
from .reports.export import (
    dataframes_to_csv_bytes,
    dataframes_to_excel_bytes,
    summarize_trades,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)
    yield


app = FastAPI(title="Trade Journal", version="1.0.0", lifespan=lifespan)

STORE = TradeStore()


class TradeUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    ticker: Optional[str] = Field(None, min_length=1)
    asset_type: Optional[AssetType] = None
    side: Optional[Side] = None
    quantity: Optional[float] = Field(None, gt=0)
    price: Optional[float] = Field(None, gt=0)
    trade_date: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class TagIn(BaseModel):
    tag: str = Field(..., min_length=1)


class NoteIn(BaseModel):
    text: str


def current_user(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


async def _read_upload(file: UploadFile) -> bytes:
    limit = get_settings().max_upload_bytes
    # one byte past the limit is enough to tell it was exceeded
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise HTTPException(status_code=413, detail=f"Upload exceeds {limit} bytes")
    return content


def _not_found(e: StoreError) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Not found: {e.args[0] if e.args else ''}")


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/api/parse")
async def parse(file: UploadFile = File(...), user_id: str = Depends(current_user)):
    try:
        content = await _read_upload(file)
        result = parse_csv_bytes(content)
        return {"ok": bool(result.trades), **result.to_dict()}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Preview of %s failed", file.filename)
        return JSONResponse({"ok": False, "error": str(e)}, status_code=500)


@app.post("/api/import")
async def import_statement(file: UploadFile = File(...), user_id: str = Depends(current_user)):
    try:
        content = await _read_upload(file)
        result = parse_csv_bytes(content)
        if not result.trades:
            return JSONResponse({"ok": False, **result.to_dict()}, status_code=400)

        stored = STORE.add_trades(user_id, result.trades)
        logger.info(
            "Imported %d trades for %s from %s (%d errors)",
            len(stored),
            user_id,
            file.filename,
            len(result.errors),
        )
        return {
            "ok": True,
            "broker": result.broker.value if result.broker else None,
            "imported": len(stored),
            "trades": [s.to_dict() for s in stored],
            "errors": result.errors,
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Import of %s failed", file.filename)
        return JSONResponse({"ok": False, "error": str(e)}, status_code=500)


@app.get("/api/trades")
def list_trades(asset_type: Optional[AssetType] = None, user_id: str = Depends(current_user)):
    trades = STORE.get_trades_by_user(user_id, asset_type.value if asset_type else None)
    return {"trades": [t.to_dict() for t in trades]}


@app.get("/api/trades/{trade_id}")
def get_trade(trade_id: int, user_id: str = Depends(current_user)):
    try:
        return STORE.get_trade(user_id, trade_id).to_dict()
    except StoreError as e:
        raise _not_found(e)


@app.patch("/api/trades/{trade_id}")
def update_trade(trade_id: int, body: TradeUpdate, user_id: str = Depends(current_user)):
    updates = body.model_dump(exclude_unset=True)
    if "ticker" in updates:
        updates["ticker"] = updates["ticker"].strip().upper()
        if not updates["ticker"]:
            raise HTTPException(status_code=422, detail="ticker must not be blank")
    if "trade_date" in updates:
        iso = parse_trade_date(updates["trade_date"])
        if iso is None:
            raise HTTPException(status_code=422, detail=f"Unrecognized trade_date: {updates['trade_date']!r}")
        updates["trade_date"] = iso
    try:
        return STORE.update_trade(user_id, trade_id, updates).to_dict()
    except StoreError as e:
        raise _not_found(e)


@app.delete("/api/trades/{trade_id}")
def delete_trade(trade_id: int, user_id: str = Depends(current_user)):
    try:
        STORE.delete_trade(user_id, trade_id)
    except StoreError as e:
        raise _not_found(e)
    return {"ok": True}


@app.post("/api/trades/{trade_id}/tags")
def add_tag(trade_id: int, body: TagIn, user_id: str = Depends(current_user)):
    try:
        return STORE.add_tag(user_id, trade_id, body.tag.strip()).to_dict()
    except StoreError as e:
        raise _not_found(e)


@app.get("/api/trades/{trade_id}/tags")
def list_tags(trade_id: int, user_id: str = Depends(current_user)):
    try:
        return {"tags": [t.to_dict() for t in STORE.get_tags_by_trade(user_id, trade_id)]}
    except StoreError as e:
        raise _not_found(e)


@app.delete("/api/tags/{tag_id}")
def delete_tag(tag_id: int, user_id: str = Depends(current_user)):
    try:
        STORE.delete_tag(user_id, tag_id)
    except StoreError as e:
        raise _not_found(e)
    return {"ok": True}


@app.put("/api/trades/{trade_id}/note")
def put_note(trade_id: int, body: NoteIn, user_id: str = Depends(current_user)):
    try:
        return STORE.upsert_note(user_id, trade_id, body.text).to_dict()
    except StoreError as e:
        raise _not_found(e)


@app.get("/api/trades/{trade_id}/note")
def get_note(trade_id: int, user_id: str = Depends(current_user)):
    try:
        note = STORE.get_note_by_trade(user_id, trade_id)
    except StoreError as e:
        raise _not_found(e)
    return {"note": note.to_dict() if note else None}


@app.delete("/api/notes/{note_id}")
def delete_note(note_id: int, user_id: str = Depends(current_user)):
    try:
        STORE.delete_note(user_id, note_id)
    except StoreError as e:
        raise _not_found(e)
    return {"ok": True}


def _summaries_for_user(user_id: str) -> Dict[str, pd.DataFrame]:
    return summarize_trades([t.to_dict() for t in STORE.get_trades_by_user(user_id)])


@app.get("/api/dashboard")
def dashboard(user_id: str = Depends(current_user)):
    # Convert DataFrames to records for quick rendering in UI
    res = _summaries_for_user(user_id)
    return {
        "ticker_summary": res["ticker_summary"].to_dict(orient="records"),
        "overall_summary": res["overall_summary"].to_dict(orient="records"),
    }


@app.get("/download/csv")
def download_csv(user_id: str = Depends(current_user)):
    bio = io.BytesIO(dataframes_to_csv_bytes(_summaries_for_user(user_id)))
    headers = {"Content-Disposition": "attachment; filename=trades.zip"}
    return StreamingResponse(bio, media_type="application/zip", headers=headers)


@app.get("/download/excel")
def download_excel(user_id: str = Depends(current_user)):
    bio = io.BytesIO(dataframes_to_excel_bytes(_summaries_for_user(user_id)))
    headers = {"Content-Disposition": "attachment; filename=trades.xlsx"}
    return StreamingResponse(bio, media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", headers=headers)


@app.get("/sample/template.csv")
def sample_template():
    df = pd.DataFrame(
        [
            ["2024-01-02", "AAPL", "Buy", 10, 150.00],
            ["2024-02-15", "AAPL", "Sell", 5, 172.50],
            ["2024-03-01", "MSFT", "Buy", 3, 410.25],
        ],
        columns=["Date", "Symbol", "Side", "Quantity", "Price"],
    )
    headers = {"Content-Disposition": "attachment; filename=sample_template.csv"}
    return Response(df.to_csv(index=False), media_type="text/csv", headers=headers)
