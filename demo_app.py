"""Demo FastAPI application with idempotency middleware.

Run with: python demo_app.py
Then try:

    curl -X POST localhost:8000/api/payments \\
         -H 'Idempotency-Key: pay-1' -H 'Content-Type: application/json' \\
         -d '{"amount": 100}'

Repeating the command returns the same payment id with an
``Idempotent-Replayed: true`` header. Set IDEMPOTENCY_STORAGE_BACKEND=redis
to share locks and responses between several workers.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Optional

import uvicorn
from fastapi import FastAPI, Header
from pydantic import BaseModel

from idempotency_key.adapters.asgi import ASGIIdempotencyMiddleware
from idempotency_key.config import IdempotencyConfig
from idempotency_key.core.cleanup import start_cleanup_task, stop_cleanup_task
from idempotency_key.observability.logging import configure_logging
from idempotency_key.storage import MemoryStore, create_store

configure_logging(level="INFO", json_output=False)

config = IdempotencyConfig.from_env()
store = create_store(config)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    task = await start_cleanup_task(store) if isinstance(store, MemoryStore) else None
    yield
    if task is not None:
        await stop_cleanup_task(task)


app = FastAPI(
    title="Idempotency-Key Middleware Demo",
    description="Demo API showing idempotent request handling",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(ASGIIdempotencyMiddleware, store=store, config=config)


class PaymentRequest(BaseModel):
    amount: int
    currency: str = "USD"
    description: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    status: str
    amount: int
    currency: str
    created_at: str


class OrderPatch(BaseModel):
    quantity: int


@app.get("/")
async def root():
    """Root endpoint - returns API info."""
    return {
        "name": "Idempotency-Key Middleware Demo",
        "version": "0.1.0",
        "endpoints": {
            "POST /api/payments": "Create idempotent payment",
            "PATCH /api/orders/{order_id}": "Update an order idempotently",
            "GET /api/status": "Health check (never deduplicated)",
        },
        "usage": "Include an 'Idempotency-Key' header in POST/PATCH requests",
    }


@app.get("/api/status")
async def get_status():
    """Health check endpoint - GET requests bypass the middleware."""
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


@app.post("/api/payments", response_model=PaymentResponse, status_code=201)
async def create_payment(
    payment: PaymentRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    """Create a payment.

    While the first request with a given key is running, duplicates get 409.
    Once it completes, duplicates get the cached response.
    """
    await asyncio.sleep(0.5)

    return PaymentResponse(
        id=f"pay_{int(time.time() * 1000)}",
        status="success",
        amount=payment.amount,
        currency=payment.currency,
        created_at=datetime.now(UTC).isoformat(),
    )


@app.patch("/api/orders/{order_id}")
async def update_order(
    order_id: str,
    patch: OrderPatch,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    """Update an order quantity."""
    await asyncio.sleep(0.1)

    return {
        "order_id": order_id,
        "quantity": patch.quantity,
        "updated_at": datetime.now(UTC).isoformat(),
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
