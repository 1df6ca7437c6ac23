"""Google OAuth 2.0 client for sign-in."""

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
import structlog

from otakusensei.config import Settings, settings as default_settings

logger = structlog.get_logger()


class GoogleAuthError(Exception):
    """Raised when Google rejects a code or token."""


@dataclass
class GoogleProfile:
    """Identity returned by Google."""

    google_id: str
    email: str
    first_name: str
    last_name: str
    avatar: str


class GoogleOAuthClient:
    """Client for Google's OAuth endpoints."""

    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
    TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
    SCOPES = ["openid", "email", "profile"]

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "GoogleOAuthClient":
        cfg = cfg or default_settings
        return cls(
            client_id=cfg.google_client_id,
            client_secret=cfg.google_client_secret,
            redirect_uri=cfg.google_redirect_uri,
        )

    def authorization_url(self, state: str | None = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            "access_type": "online",
            "prompt": "select_account",
        }
        if state:
            params["state"] = state
        return f"{self.AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> GoogleProfile:
        """Exchange an authorization code and fetch the user's profile."""
        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=30.0,
            )
            if response.status_code != 200:
                logger.warning("Google code exchange failed", status=response.status_code)
                raise GoogleAuthError("code_exchange_failed")

            access_token = response.json().get("access_token")
            if not access_token:
                raise GoogleAuthError("access_token_missing")

            response = await client.get(
                self.USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=30.0,
            )
            if response.status_code != 200:
                logger.warning("Google userinfo fetch failed", status=response.status_code)
                raise GoogleAuthError("userinfo_failed")

            return self._parse_profile(response.json())

    async def verify_id_token(self, id_token: str) -> GoogleProfile:
        """Validate an ID token issued to this client and return its claims."""
        async with httpx.AsyncClient() as client:
            response = await client.get(
                self.TOKENINFO_URL,
                params={"id_token": id_token},
                timeout=30.0,
            )
        if response.status_code != 200:
            raise GoogleAuthError("invalid_id_token")

        claims = response.json()
        if claims.get("aud") != self.client_id:
            raise GoogleAuthError("audience_mismatch")
        if str(claims.get("email_verified", "")).lower() != "true":
            raise GoogleAuthError("email_not_verified")
        return self._parse_profile(claims)

    @staticmethod
    def _parse_profile(data: dict) -> GoogleProfile:
        google_id = data.get("sub")
        email = data.get("email")
        if not google_id or not email:
            raise GoogleAuthError("profile_incomplete")
        return GoogleProfile(
            google_id=str(google_id),
            email=email,
            first_name=data.get("given_name") or email.split("@")[0],
            last_name=data.get("family_name") or "",
            avatar=data.get("picture") or "",
        )
