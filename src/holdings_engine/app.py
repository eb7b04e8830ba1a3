"""FastAPI application exposing the holdings analyses as JSON endpoints."""
from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings
from .errors import (
    DeadlineExceeded,
    EntityNotFound,
    FetchError,
    HoldingsEngineError,
    InsufficientHistory,
    ParseFailure,
    ResolutionFailure,
)
from .logging_utils import configure_logging
from .serializers import comparison_payload, history_payload, holders_payload, overlap_payload
from .service import HoldingsService
from .sources import create_source
from .store import create_db_engine, ensure_schema

configure_logging()

LOGGER = logging.getLogger(__name__)

settings = Settings.load()
engine = create_db_engine(settings.database_url)

# Most specific first.
ERROR_STATUS: tuple[tuple[type[HoldingsEngineError], int], ...] = (
    (EntityNotFound, status.HTTP_404_NOT_FOUND),
    (InsufficientHistory, status.HTTP_404_NOT_FOUND),
    (ResolutionFailure, status.HTTP_404_NOT_FOUND),
    (ParseFailure, status.HTTP_404_NOT_FOUND),
    (DeadlineExceeded, status.HTTP_504_GATEWAY_TIMEOUT),
    (FetchError, status.HTTP_502_BAD_GATEWAY),
)

_service: Optional[HoldingsService] = None


def get_service() -> HoldingsService:
    global _service
    if _service is None:
        _service = HoldingsService(settings, create_source(settings), db_engine=engine)
    return _service


class TrackerRequest(BaseModel):
    ticker: str = Field(min_length=1)
    mode: Literal["qoq", "yoy"] = "qoq"


class ClusterRequest(BaseModel):
    ticker1: str = Field(min_length=1)
    ticker2: str = Field(min_length=1)


class HoldingInfo(BaseModel):
    issuer: Optional[str] = None
    cusip: Optional[str] = None


class HistoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ticker: str = Field(min_length=1)
    holding_info: HoldingInfo = Field(alias="holdingInfo")


class ReverseLookupRequest(BaseModel):
    ticker: str = Field(min_length=1)


app = FastAPI(title="Institutional Holdings")


@app.on_event("startup")
async def startup_event() -> None:
    LOGGER.info("Starting FastAPI application")
    ensure_schema(engine)


@app.exception_handler(HoldingsEngineError)
async def engine_error_handler(request: Request, exc: HoldingsEngineError) -> JSONResponse:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code >= 500:
        LOGGER.error("%s failed: %s", request.url.path, exc)
    else:
        LOGGER.info("%s: %s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/whale-tracker")
def whale_tracker(body: TrackerRequest, service: HoldingsService = Depends(get_service)) -> dict[str, Any]:
    LOGGER.info("Analyzing %s (%s)", body.ticker, body.mode)
    return comparison_payload(service.compare(body.ticker, mode=body.mode))


@app.post("/api/whale-cluster")
def whale_cluster(body: ClusterRequest, service: HoldingsService = Depends(get_service)) -> dict[str, Any]:
    LOGGER.info("Comparing holdings of %s and %s", body.ticker1, body.ticker2)
    return overlap_payload(service.overlap(body.ticker1, body.ticker2))


@app.post("/api/whale-history")
def whale_history(body: HistoryRequest, service: HoldingsService = Depends(get_service)) -> dict[str, Any]:
    info = body.holding_info
    try:
        history = service.track(body.ticker, issuer_name=info.issuer, security_id=info.cusip)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return history_payload(history)


@app.post("/api/whale-reverse-lookup")
def whale_reverse_lookup(
    body: ReverseLookupRequest, service: HoldingsService = Depends(get_service)
) -> dict[str, Any]:
    return holders_payload(service.reverse_lookup(body.ticker))


__all__ = ["app", "get_service"]
