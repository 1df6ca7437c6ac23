"""Dependencies handing process-wide clients to route handlers.

The clients are built once in the application lifespan and stored on
``app.state``; tests swap them through ``app.dependency_overrides``.
"""

from fastapi import HTTPException, Request

from otakusensei.database import is_valid_id
from otakusensei.services.google_oauth import GoogleOAuthClient
from otakusensei.services.mailer import Mailer
from otakusensei.services.payments import StripeGateway


def _state_attr(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"{name} not configured")
    return value


def get_mailer(request: Request) -> Mailer:
    return _state_attr(request, "mailer")


def get_payment_gateway(request: Request) -> StripeGateway:
    return _state_attr(request, "payment_gateway")


def get_google_oauth(request: Request) -> GoogleOAuthClient:
    return _state_attr(request, "google_oauth")


def ensure_id(value: str, label: str) -> str:
    """Reject malformed ids before touching the database."""
    if not is_valid_id(value):
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")
    return value
