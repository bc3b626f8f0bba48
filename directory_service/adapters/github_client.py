"""GitHub OAuth and REST adapter used to collect enrichment data."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List
from urllib.parse import urlencode

import httpx
from loguru import logger

from directory_service.config import settings
from directory_service.domain.errors import ExternalServiceError
from directory_service.utils.http import json_body, send, sync_client

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
API_BASE = "https://api.github.com"
SCOPES = ("read:user", "user:email", "repo")

_JSON_ACCEPT = "application/vnd.github.v3+json"
_RAW_ACCEPT = "application/vnd.github.v3.raw"
_README_LIMIT = 5000
_ENHANCED_REPOS = 10


def _headers(access_token: str, accept: str = _JSON_ACCEPT) -> Dict[str, str]:
    return {"Authorization": f"token {access_token}", "Accept": accept}


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def build_authorization_url(state: str) -> str:
    if not settings.github_client_id:
        raise ExternalServiceError("GitHub OAuth is not configured (missing GITHUB_CLIENT_ID)")
    query = urlencode(
        {
            "client_id": settings.github_client_id,
            "redirect_uri": settings.oauth_redirect_uri("github"),
            "scope": " ".join(SCOPES),
            "state": state,
        }
    )
    return f"{AUTHORIZE_URL}?{query}"


def exchange_code_for_token(code: str) -> Dict[str, Any]:
    """Trade an authorization *code* for an access token payload."""

    if not settings.github_client_id or not settings.github_client_secret:
        raise ExternalServiceError("GitHub OAuth is not configured")

    payload = {
        "client_id": settings.github_client_id,
        "client_secret": settings.github_client_secret,
        "code": code,
        "redirect_uri": settings.oauth_redirect_uri("github"),
    }
    with sync_client(timeout=15) as client:
        response = send(client.post, TOKEN_URL, service="GitHub", headers={"Accept": "application/json"}, data=payload)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(f"GitHub token exchange failed: {exc.response.status_code}") from exc
        data = json_body(response, service="GitHub")

    if not isinstance(data, dict):
        raise ExternalServiceError("GitHub returned an unexpected token payload")
    if data.get("error") or not data.get("access_token"):
        raise ExternalServiceError(f"GitHub token exchange failed: {data.get('error_description') or data.get('error')}")
    return data


def _get_json(client: httpx.Client, path: str, access_token: str, params: Dict[str, Any] | None = None) -> Any:
    response = send(client.get, f"{API_BASE}{path}", service="GitHub", headers=_headers(access_token), params=params)
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ExternalServiceError(f"GitHub request {path} failed: {exc.response.status_code}") from exc
    return json_body(response, service="GitHub")


def _primary_email(emails: List[Dict[str, Any]]) -> str | None:
    for predicate in (lambda e: e.get("primary"), lambda e: e.get("verified"), lambda e: True):
        for entry in emails:
            if predicate(entry) and entry.get("email"):
                return entry["email"]
    return None


def _readme(client: httpx.Client, access_token: str, full_name: str) -> str | None:
    response = send(
        client.get,
        f"{API_BASE}/repos/{full_name}/readme",
        service="GitHub",
        headers=_headers(access_token, _RAW_ACCEPT),
    )
    if response.status_code != 200:
        return None
    return response.text[:_README_LIMIT]


def summarize_commits(commits: List[Dict[str, Any]], *, now: datetime | None = None) -> Dict[str, Any]:
    """Reduce a commit listing (newest first) to activity indicators."""

    if not commits:
        return {
            "total_commits_analyzed": 0,
            "commit_frequency": "none",
            "last_commit_date": None,
            "commit_messages_sample": [],
        }

    now = now or datetime.now(timezone.utc)
    last_date = _parse_ts(((commits[0].get("commit") or {}).get("author") or {}).get("date"))
    days_since = (now - last_date).days if last_date else None
    frequency = "active"
    if days_since is not None and days_since > 90:
        frequency = "inactive"
    elif days_since is not None and days_since > 30:
        frequency = "moderate"

    sample = []
    for item in commits[:5]:
        commit = item.get("commit") or {}
        message = (commit.get("message") or "").split("\n", 1)[0][:100]
        sample.append({"message": message, "date": (commit.get("author") or {}).get("date")})

    return {
        "total_commits_analyzed": len(commits),
        "commit_frequency": frequency,
        "last_commit_date": last_date.isoformat() if last_date else None,
        "days_since_last_commit": days_since,
        "commit_messages_sample": sample,
    }


def _commit_history(client: httpx.Client, access_token: str, full_name: str) -> Dict[str, Any]:
    response = send(
        client.get,
        f"{API_BASE}/repos/{full_name}/commits",
        service="GitHub",
        headers=_headers(access_token),
        params={"per_page": 10},
    )
    if response.status_code in (403, 404, 409):
        return {"total_commits_analyzed": 0, "commit_frequency": "unknown", "last_commit_date": None, "error": "commits_not_accessible"}
    if response.status_code != 200:
        return {"total_commits_analyzed": 0, "commit_frequency": "unknown", "last_commit_date": None, "error": "fetch_failed"}
    commits = json_body(response, service="GitHub")
    return summarize_commits(commits if isinstance(commits, list) else [])


def summarize_events(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Count public event types and derive the covered activity period."""

    counts = Counter(event.get("type") for event in events if event.get("type"))
    dates = sorted(d for d in (_parse_ts(event.get("created_at")) for event in events) if d)
    return {
        "total_events": len(events),
        "event_types": dict(counts),
        "activity_period": {"start": dates[0].isoformat(), "end": dates[-1].isoformat()} if dates else None,
        "last_activity_date": dates[-1].isoformat() if dates else None,
    }


def _normalize_repo(repo: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": repo.get("id"),
        "name": repo.get("name"),
        "full_name": repo.get("full_name"),
        "description": repo.get("description"),
        "url": repo.get("html_url"),
        "language": repo.get("language"),
        "stars": repo.get("stargazers_count", 0),
        "forks": repo.get("forks_count", 0),
        "is_private": bool(repo.get("private")),
        "is_fork": bool(repo.get("fork")),
        "created_at": repo.get("created_at"),
        "updated_at": repo.get("updated_at"),
        "pushed_at": repo.get("pushed_at"),
        "default_branch": repo.get("default_branch"),
        "topics": repo.get("topics") or [],
    }


def _repositories(client: httpx.Client, access_token: str) -> List[Dict[str, Any]]:
    raw = _get_json(
        client,
        "/user/repos",
        access_token,
        params={"sort": "updated", "direction": "desc", "per_page": 30, "type": "all"},
    )
    repos = [_normalize_repo(item) for item in raw if isinstance(item, dict)] if isinstance(raw, list) else []
    for repo in repos[:_ENHANCED_REPOS]:
        full_name = repo.get("full_name")
        if not full_name:
            continue
        try:
            repo["readme"] = _readme(client, access_token, full_name)
            repo["commit_history"] = _commit_history(client, access_token, full_name)
        except ExternalServiceError as exc:
            logger.warning("GitHub enrichment skipped for {}: {}", full_name, exc)
            repo.setdefault("readme", None)
            repo.setdefault("commit_history", None)
    return repos


def fetch_profile(access_token: str) -> Dict[str, Any]:
    """Fetch the user profile, primary email, repositories and public activity."""

    with sync_client(timeout=15) as client:
        profile = _get_json(client, "/user", access_token)
        if not isinstance(profile, dict):
            raise ExternalServiceError("GitHub returned an unexpected profile payload")
        try:
            emails = _get_json(client, "/user/emails", access_token)
        except ExternalServiceError as exc:
            logger.warning("GitHub emails unavailable: {}", exc)
            emails = []
        try:
            repositories = _repositories(client, access_token)
        except ExternalServiceError as exc:
            logger.warning("GitHub repositories unavailable: {}", exc)
            repositories = []

        contributions = None
        login = profile.get("login")
        if login:
            try:
                events = _get_json(client, f"/users/{login}/events/public", access_token, params={"per_page": 30})
                contributions = summarize_events(events if isinstance(events, list) else [])
            except ExternalServiceError as exc:
                logger.warning("GitHub events unavailable for {}: {}", login, exc)

    return {
        **profile,
        "email": _primary_email(emails if isinstance(emails, list) else []) or profile.get("email"),
        "repositories": repositories,
        "contribution_statistics": contributions,
        "fetched_at": datetime.now(timezone.utc).isoformat(),
    }
