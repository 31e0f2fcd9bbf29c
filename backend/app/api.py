"""REST control plane: login, subscribe, unsubscribe, instrument listing."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.market.cache import PriceCache
from app.stream.session import SessionController
from app.subscriptions.errors import IncompleteRequest, SubscriptionError, UnsupportedInstrument

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    email: str | None = Field(default=None, validation_alias=AliasChoices("email", "userKey"))

    @field_validator("email", mode="before")
    @classmethod
    def _text_only(cls, value: object) -> str | None:
        return value if isinstance(value, str) else None


class SubscriptionRequest(BaseModel):
    email: str | None = Field(default=None, validation_alias=AliasChoices("email", "userKey"))
    ticker: str | None = Field(default=None, validation_alias=AliasChoices("ticker", "instrument"))

    @field_validator("email", "ticker", mode="before")
    @classmethod
    def _text_only(cls, value: object) -> str | None:
        return value if isinstance(value, str) else None

    def require(self) -> tuple[str, str]:
        """Return the (user key, instrument) pair, rejecting partial bodies."""
        if not self.email or not self.ticker:
            raise IncompleteRequest()
        return self.email, self.ticker


def create_api_router(controller: SessionController, price_cache: PriceCache) -> APIRouter:
    """Create the control-plane router bound to a session controller."""
    router = APIRouter(prefix="/api", tags=["subscriptions"])

    @router.post("/login")
    async def login(body: LoginRequest | None = None) -> dict:
        email = body.email if body else None
        subscriptions = controller.login(email)
        return {"success": True, "email": email, "subscriptions": sorted(subscriptions)}

    @router.post("/subscribe")
    async def subscribe(body: SubscriptionRequest | None = None) -> dict:
        subscriptions = controller.subscribe(*(body or SubscriptionRequest()).require())
        return {"success": True, "subscriptions": sorted(subscriptions)}

    @router.post("/unsubscribe")
    async def unsubscribe(body: SubscriptionRequest | None = None) -> dict:
        subscriptions = controller.unsubscribe(*(body or SubscriptionRequest()).require())
        return {"success": True, "subscriptions": sorted(subscriptions)}

    @router.get("/supported-stocks")
    async def supported_instruments() -> dict:
        return {"instruments": controller.supported_instruments()}

    @router.get("/history/{instrument}")
    async def history(instrument: str) -> dict:
        """Trailing price window for charting."""
        supported = controller.supported_instruments()
        if instrument not in supported:
            raise UnsupportedInstrument(instrument, supported)
        return {"instrument": instrument, "prices": [round(p, 2) for p in price_cache.history(instrument)]}

    return router


def create_health_router(controller: SessionController) -> APIRouter:
    router = APIRouter(tags=["health"])
    started = time.monotonic()

    @router.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started, 3),
            "connections": controller.connection_count,
        }

    return router


def install_error_handlers(app: FastAPI) -> None:
    """Map subscription errors onto JSON error responses."""

    @app.exception_handler(SubscriptionError)
    async def subscription_error_handler(request: Request, exc: SubscriptionError) -> JSONResponse:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("%s %s rejected: malformed body", request.method, request.url.path)
        return JSONResponse(status_code=400, content={"error": "Malformed request body"})
