"""OAuth helpers for Google sign-in.

When ``GOOGLE_CLIENT_ID`` / ``GOOGLE_CLIENT_SECRET`` are not configured the
helpers fall back to a **demo mode** that returns a local test profile
without hitting Google.
"""

from __future__ import annotations

import uuid
from urllib.parse import urlencode

import httpx

from clubconsole.config import ConsoleConfig
from clubconsole.errors import ProviderError

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

SUPPORTED_PROVIDERS = ("google",)


def is_demo_mode(config: ConsoleConfig) -> bool:
    """Return True when OAuth credentials are not configured."""
    return not (config.google_client_id and config.google_client_secret)


def get_google_auth_url(config: ConsoleConfig, state: str, redirect_uri: str = "") -> str:
    """Return the Google authorization URL, or ``""`` in demo mode."""
    if is_demo_mode(config):
        return ""
    params = {
        "client_id": config.google_client_id,
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
    }
    if redirect_uri:
        params["redirect_uri"] = redirect_uri
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def exchange_google_code(
    config: ConsoleConfig,
    code: str,
    redirect_uri: str = "",
    client: httpx.AsyncClient | None = None,
) -> dict:
    """Exchange an authorization code for the user's profile.

    Returns a dict with keys ``email``, ``display_name``, ``photo_url``,
    ``provider`` and ``provider_id``. In demo mode, returns a synthetic
    profile.
    """
    if is_demo_mode(config):
        return demo_profile()

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=10.0)
    try:
        token_resp = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "client_id": config.google_client_id,
                "client_secret": config.google_client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        token_data = token_resp.json()
        access_token = token_data.get("access_token", "")
        if not access_token:
            raise ProviderError(f"Google OAuth error: {token_data.get('error_description') or token_data.get('error', 'no token')}")

        user_resp = await client.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        user_data = user_resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise ProviderError(f"Google OAuth request failed: {exc}") from exc
    finally:
        if owns_client:
            await client.aclose()

    return {
        "email": user_data.get("email", ""),
        "display_name": user_data.get("name", "") or user_data.get("email", ""),
        "photo_url": user_data.get("picture", ""),
        "provider": "google",
        "provider_id": str(user_data.get("sub", "")),
    }


def demo_profile() -> dict:
    """Return a deterministic demo profile for local development."""
    return {
        "email": "demo@clubconsole.local",
        "display_name": "Demo Member",
        "photo_url": "",
        "provider": "google",
        "provider_id": str(uuid.uuid5(uuid.NAMESPACE_DNS, "clubconsole-demo-user")),
    }
