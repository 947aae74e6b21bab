"""
api/app.py
----------
HTTP entry points: the scheduled sweep trigger and the payment gateway
webhook. Both are thin: they authenticate, parse, call one service and map
domain errors to status codes.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from config import API_HOST, API_PORT, WEBHOOK_SECRET
from db.connection import close_pool, init_pool
from db.init_db import create_tables
from models.errors import BillingError, InvalidArgument, InvalidTransition, NotFound, UpstreamFailure
from services.charge_service import ChargeService
from services.sweep_service import SweepService
from utils.logger import get_logger

logger = get_logger(__name__)

PAID_STATUSES = ("approved", "paid")

ERROR_STATUS = {
    InvalidArgument: 400,
    NotFound: 404,
    InvalidTransition: 409,
    UpstreamFailure: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_pool()
    create_tables()
    yield
    close_pool()


app = FastAPI(
    title="PingPague API",
    description="Overdue sweep trigger and payment webhook.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["authorization", "content-type", "x-webhook-secret"],
)


# ------------------------------------------------------------
# Dependencies
# ------------------------------------------------------------
def get_sweep_service() -> SweepService:
    return SweepService()


def get_charge_service() -> ChargeService:
    return ChargeService()


def verify_secret(x_webhook_secret: Optional[str] = Header(None)) -> None:
    """Only enforced when WEBHOOK_SECRET is configured."""
    if WEBHOOK_SECRET and x_webhook_secret != WEBHOOK_SECRET:
        logger.warning("Rejected request with invalid webhook secret")
        raise HTTPException(status_code=401, detail="Invalid webhook secret")


def error_response(error: Exception) -> JSONResponse:
    status = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(error, cls)), 500
    )
    return JSONResponse(status_code=status, content={"error": str(error)})


# ------------------------------------------------------------
# Payload parsing
# ------------------------------------------------------------
def parse_charge_id(value) -> int:
    if value is None or value == "":
        raise InvalidArgument("charge_id is required")
    if isinstance(value, bool):
        raise InvalidArgument(f"Invalid charge_id {value!r}")
    try:
        charge_id = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"Invalid charge_id {value!r}") from None
    if charge_id <= 0:
        raise InvalidArgument(f"Invalid charge_id {value!r}")
    return charge_id


def parse_paid_at(value) -> Optional[datetime]:
    """ISO-8601 timestamp; naive values are taken as UTC."""
    if value in (None, ""):
        return None
    try:
        paid_at = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise InvalidArgument(f"Invalid paid_at {value!r}") from None
    if paid_at.tzinfo is None:
        paid_at = paid_at.replace(tzinfo=timezone.utc)
    return paid_at


# ------------------------------------------------------------
# Routes
# ------------------------------------------------------------
@app.post("/functions/check-overdue-charges", dependencies=[Depends(verify_secret)])
async def check_overdue_charges(sweeper: SweepService = Depends(get_sweep_service)):
    """Run one overdue & reminder sweep and report what it did."""
    try:
        result = await run_in_threadpool(sweeper.run)
    except Exception as e:
        logger.error(f"Sweep failed: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})
    return result.to_dict()


@app.post("/functions/payment-webhook", dependencies=[Depends(verify_secret)])
async def payment_webhook(request: Request, charges: ChargeService = Depends(get_charge_service)):
    """
    Gateway callback. Body: {charge_id, status, paid_at?, transaction_id?}.
    Statuses other than approved/paid are acknowledged and ignored.
    """
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Body must be JSON"})
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Body must be a JSON object"})

    logger.info(f"Payment webhook received: {payload}")
    try:
        charge_id = parse_charge_id(payload.get("charge_id"))
        status = str(payload.get("status") or "").lower()
        if status not in PAID_STATUSES:
            logger.info(f"Ignoring payment status {status!r} for charge #{charge_id}")
            return {
                "success": True,
                "message": "Status ignored",
                "charge_id": charge_id,
                "status": status,
            }

        outcome = await run_in_threadpool(
            charges.confirm_payment,
            charge_id,
            paid_at=parse_paid_at(payload.get("paid_at")),
            transaction_id=payload.get("transaction_id"),
        )
    except BillingError as e:
        logger.warning(f"Payment webhook rejected: {e}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Payment webhook failed: {e}")
        return error_response(e)

    body = {
        "success": True,
        "message": "Payment processed successfully",
        "charge_id": charge_id,
        "status": outcome.charge.status,
    }
    if outcome.successor is not None:
        body["next_charge_id"] = outcome.successor.id
    return body


@app.get("/health")
def health():
    return {"status": "healthy"}


def run() -> None:
    uvicorn.run("api.app:app", host=API_HOST, port=API_PORT, log_level="info")


if __name__ == "__main__":
    run()
