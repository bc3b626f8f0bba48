"""LinkedIn OAuth and profile adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict
from urllib.parse import urlencode

import httpx
from loguru import logger

from directory_service.config import settings
from directory_service.domain.errors import ExternalServiceError
from directory_service.utils.http import json_body, send, sync_client

AUTHORIZE_URL = "https://www.linkedin.com/oauth/v2/authorization"
TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
USERINFO_URL = "https://api.linkedin.com/v2/userinfo"
LEGACY_PROFILE_URL = "https://api.linkedin.com/v2/me"
EMAIL_URL = "https://api.linkedin.com/v2/emailAddress?q=members&projection=(elements*(handle~))"
SCOPES = ("openid", "profile", "email")


def _bearer(access_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def _localized(value: Any) -> Any:
    if isinstance(value, dict):
        return (value.get("localized") or {}).get("en_US") or value
    return value


def _json_object(response: httpx.Response) -> Dict[str, Any]:
    data = json_body(response, service="LinkedIn")
    if not isinstance(data, dict):
        raise ExternalServiceError("LinkedIn returned an unexpected payload")
    return data


def build_authorization_url(state: str) -> str:
    if not settings.linkedin_client_id:
        raise ExternalServiceError("LinkedIn OAuth is not configured (missing LINKEDIN_CLIENT_ID)")
    query = urlencode(
        {
            "response_type": "code",
            "client_id": settings.linkedin_client_id,
            "redirect_uri": settings.oauth_redirect_uri("linkedin"),
            "state": state,
            "scope": " ".join(SCOPES),
        }
    )
    return f"{AUTHORIZE_URL}?{query}"


def exchange_code_for_token(code: str) -> Dict[str, Any]:
    """Trade an authorization *code* for ``access_token``/``expires_in``."""

    if not settings.linkedin_client_id or not settings.linkedin_client_secret:
        raise ExternalServiceError("LinkedIn OAuth is not configured")

    form = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": settings.oauth_redirect_uri("linkedin"),
        "client_id": settings.linkedin_client_id,
        "client_secret": settings.linkedin_client_secret,
    }
    with sync_client(timeout=15) as client:
        response = send(
            client.post,
            TOKEN_URL,
            service="LinkedIn",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data=form,
        )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(f"LinkedIn token exchange failed: {exc.response.status_code}") from exc
        data = json_body(response, service="LinkedIn")

    if not isinstance(data, dict) or not data.get("access_token"):
        raise ExternalServiceError("LinkedIn token exchange returned no access token")
    return data


def _legacy_profile(client: httpx.Client, access_token: str) -> Dict[str, Any]:
    response = send(client.get, LEGACY_PROFILE_URL, service="LinkedIn", headers=_bearer(access_token))
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ExternalServiceError(f"LinkedIn profile request failed: {exc.response.status_code}") from exc
    data = _json_object(response)
    picture = data.get("profilePicture")
    return {
        "id": data.get("id"),
        "given_name": _localized(data.get("firstName")),
        "family_name": _localized(data.get("lastName")),
        "picture": picture.get("displayImage") if isinstance(picture, dict) else picture,
    }


def _legacy_email(client: httpx.Client, access_token: str) -> str | None:
    response = send(client.get, EMAIL_URL, service="LinkedIn", headers=_bearer(access_token))
    if response.status_code != 200:
        logger.info("LinkedIn email endpoint unavailable status={}", response.status_code)
        return None
    elements = _json_object(response).get("elements") or []
    if not elements:
        return None
    return (elements[0].get("handle~") or {}).get("emailAddress")


def fetch_profile(access_token: str) -> Dict[str, Any]:
    """Return the member profile, preferring the OpenID ``userinfo`` endpoint."""

    with sync_client(timeout=10) as client:
        response = send(client.get, USERINFO_URL, service="LinkedIn", headers=_bearer(access_token))
        if response.status_code in (403, 404):
            logger.info("LinkedIn userinfo returned {}; using legacy profile endpoint", response.status_code)
            profile = _legacy_profile(client, access_token)
        else:
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise ExternalServiceError(f"LinkedIn profile request failed: {exc.response.status_code}") from exc
            data = _json_object(response)
            profile = {
                "id": data.get("sub"),
                "name": data.get("name"),
                "given_name": data.get("given_name"),
                "family_name": data.get("family_name"),
                "email": data.get("email"),
                "email_verified": bool(data.get("email_verified")),
                "picture": data.get("picture"),
                "locale": data.get("locale"),
            }

        if not profile.get("email"):
            try:
                profile["email"] = _legacy_email(client, access_token)
            except ExternalServiceError as exc:
                logger.warning("LinkedIn email lookup failed: {}", exc.message)
                profile["email"] = None

    if not profile.get("name"):
        parts = [profile.get("given_name"), profile.get("family_name")]
        profile["name"] = " ".join(str(p) for p in parts if p) or None
    profile["fetched_at"] = datetime.now(timezone.utc).isoformat()
    return profile


def profile_url(profile: Dict[str, Any]) -> str | None:
    member_id = profile.get("id") or profile.get("sub")
    return f"https://www.linkedin.com/in/{member_id}" if member_id else None
