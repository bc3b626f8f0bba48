"""Adapter for Google Gemini ``generateContent`` used by profile enrichment."""

from __future__ import annotations

import json
import re
import time
from typing import Any, Dict, List, Mapping, Sequence

import httpx
from loguru import logger

from directory_service.config import settings
from directory_service.domain.errors import ExternalServiceError
from directory_service.utils.http import sync_client

_RATE_LIMIT_MARKERS = ("rate limit", "quota", "resource exhausted")
_FENCE_RE = re.compile(r"^```(?:json|sql)?\s*|\s*```$", re.IGNORECASE)

_sleep = time.sleep


def _is_rate_limited(status_code: int | None, message: str) -> bool:
    lowered = message.lower()
    return status_code == 429 or any(marker in lowered for marker in _RATE_LIMIT_MARKERS)


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json().get("error", {}).get("message") or response.text)
    except ValueError:
        return response.text


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence from model output."""

    return _FENCE_RE.sub("", (text or "").strip()).strip()


def generate_content(prompt: str, *, timeout: float = 30, temperature: float | None = None) -> str:
    """Send *prompt* to Gemini and return the first candidate's text.

    Rate-limit and quota errors are retried with ``2**attempt`` second backoff
    up to ``GEMINI_MAX_RETRIES`` attempts; other failures raise immediately.
    """

    if not settings.gemini_api_key:
        raise ExternalServiceError("Gemini configuration is incomplete (missing API key)")

    url = f"{settings.gemini_base_url.rstrip('/')}/models/{settings.gemini_model}:generateContent"
    payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
    if temperature is not None:
        payload["generationConfig"] = {"temperature": temperature}

    attempts = max(1, settings.gemini_max_retries)
    last_error = "unknown error"
    for attempt in range(attempts):
        with sync_client(timeout=timeout) as client:
            try:
                response = client.post(
                    url,
                    params={"key": settings.gemini_api_key},
                    headers={"Content-Type": "application/json"},
                    json=payload,
                )
            except httpx.HTTPError as exc:
                raise ExternalServiceError(f"Gemini request failed: {exc.__class__.__name__}") from exc

            if response.status_code >= 400:
                last_error = _error_message(response)
                if _is_rate_limited(response.status_code, last_error) and attempt < attempts - 1:
                    delay = 2 ** attempt
                    logger.warning("Gemini rate limited; retrying in {}s (attempt {}/{})", delay, attempt + 1, attempts)
                    _sleep(delay)
                    continue
                raise ExternalServiceError(f"Gemini request failed: {response.status_code} {last_error}")

            try:
                text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
            except (KeyError, ValueError, IndexError, TypeError) as exc:
                raise ExternalServiceError("Gemini returned an unexpected payload") from exc

        text = (text or "").strip()
        if not text:
            raise ExternalServiceError("Gemini returned an empty completion")
        return text

    raise ExternalServiceError(f"Gemini request failed after {attempts} attempts: {last_error}")


# --- prompts ------------------------------------------------------------------


def build_bio_prompt(
    linkedin: Mapping[str, Any] | None,
    github: Mapping[str, Any] | None,
    employee: Mapping[str, Any],
) -> str:
    name = employee.get("full_name") or "the employee"
    role = employee.get("current_role_in_company") or "their role"
    target = employee.get("target_role_in_company")

    lines = [
        "You are a professional HR and career development assistant writing accurate, "
        "compelling bios for employee profiles.",
        "",
        "CONTEXT:",
        f"You are writing a bio for {name}, who currently works as {role}"
        + (f" and aims to move into {target}." if target and target != role else "."),
        "",
    ]

    if linkedin:
        lines.append("LINKEDIN PROFILE DATA:")
        for key, label in (
            ("name", "Full Name"),
            ("headline", "Professional Headline"),
            ("summary", "Professional Summary"),
            ("locale", "Location"),
        ):
            if linkedin.get(key):
                lines.append(f"- {label}: {linkedin[key]}")
        positions = linkedin.get("positions") or linkedin.get("experience") or []
        for index, position in enumerate(positions[:5], start=1):
            title = position.get("title") or "Position"
            company = position.get("companyName") or position.get("company") or "Company"
            lines.append(f"  {index}. {title} at {company}")
        lines.append("")

    if github:
        lines.append("GITHUB PROFILE DATA:")
        for key, label in (
            ("name", "Name"),
            ("login", "Username"),
            ("bio", "Bio"),
            ("company", "Company"),
            ("public_repos", "Public Repositories"),
            ("followers", "Followers"),
        ):
            if github.get(key):
                lines.append(f"- {label}: {github[key]}")
        repositories = github.get("repositories") or []
        if repositories:
            lines.append("- Top Repositories:")
        for index, repo in enumerate(repositories[:10], start=1):
            entry = f"  {index}. {repo.get('name') or 'Repository'}"
            if repo.get("description"):
                entry += f" | {repo['description']}"
            if repo.get("language"):
                entry += f" | language: {repo['language']}"
            if repo.get("topics"):
                entry += f" | topics: {', '.join(repo['topics'])}"
            if repo.get("is_fork"):
                entry += " | forked"
            lines.append(entry)
        lines.append("")

    lines.extend(
        [
            "OUTPUT REQUIREMENTS:",
            f'- Write in the third person, referring to {name} by name and with "they/their".',
            "- Length: 3-5 sentences, maximum 250 words.",
            "- Combine professional experience from LinkedIn with technical work from GitHub.",
            "- Do NOT include contact information, email addresses, URLs or social handles.",
            "- Return ONLY the bio as plain text with no markdown.",
            "",
            f"Now write the bio for {name}:",
        ]
    )
    return "\n".join(lines)


def build_project_summaries_prompt(repositories: Sequence[Mapping[str, Any]]) -> str:
    lines = [
        "You are a technical writer summarising software repositories for an employee profile.",
        "",
        "REPOSITORY DATA:",
    ]
    for index, repo in enumerate(repositories[:20], start=1):
        lines.append(f"{index}. {repo.get('name') or 'Repository'}")
        for key, label in (
            ("description", "Description"),
            ("language", "Primary Language"),
            ("stars", "Stars"),
            ("forks", "Forks"),
            ("updated_at", "Last Updated"),
        ):
            if repo.get(key):
                lines.append(f"   {label}: {repo[key]}")
        if repo.get("is_fork"):
            lines.append("   Type: Forked repository (contribution to an existing project)")
        if repo.get("readme"):
            lines.append(f"   README excerpt: {str(repo['readme'])[:500]}")
    lines.extend(
        [
            "",
            "OUTPUT REQUIREMENTS:",
            '- Return a JSON array of objects with "repository_name" and "summary" fields.',
            "- Each summary: 2-3 sentences, maximum 200 words, specific to that repository.",
            "- Valid JSON only, no markdown and no commentary.",
        ]
    )
    return "\n".join(lines)


def build_value_proposition_prompt(employee: Mapping[str, Any]) -> str:
    name = employee.get("full_name") or "the employee"
    current = employee.get("current_role_in_company") or "their current role"
    target = employee.get("target_role_in_company")
    progressing = bool(target) and target != current

    lines = [
        "You are a career development assistant writing value propositions for employee profiles.",
        "",
        f"Employee: {name}",
        f"Current Role: {current}",
        f"Target Role: {target if progressing else 'same as current role'}",
        "",
        f"State that {name} currently works as {current}.",
    ]
    if progressing:
        lines.append(f"State that {name} is moving towards {target} and name the skills still missing.")
    else:
        lines.append(f"Note that {name} is continuing in the current role.")
    lines.append("Plain text, 2-3 sentences, maximum 150 words, professional and encouraging tone.")
    return "\n".join(lines)


# --- high level operations ------------------------------------------------------


def generate_bio(
    linkedin: Mapping[str, Any] | None,
    github: Mapping[str, Any] | None,
    employee: Mapping[str, Any],
) -> str:
    return generate_content(build_bio_prompt(linkedin, github, employee))


def fallback_project_summaries(repositories: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Summaries derived from repository metadata alone."""

    summaries: List[Dict[str, Any]] = []
    for repo in repositories[:20]:
        if not repo.get("name"):
            continue
        suffix = " (forked)" if repo.get("is_fork") else ""
        summaries.append(
            {
                "repository_name": repo["name"],
                "repository_url": repo.get("url"),
                "summary": repo.get("description") or f"A {repo.get('language') or 'software'} project{suffix}.",
            }
        )
    return summaries


def parse_project_summaries(text: str, repositories: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Parse the JSON array returned by Gemini, falling back to repository metadata."""

    try:
        items = json.loads(strip_code_fences(text))
    except ValueError:
        logger.warning("Gemini project summaries were not valid JSON; using repository metadata")
        return fallback_project_summaries(repositories)
    if not isinstance(items, list):
        logger.warning("Gemini project summaries were not a JSON array; using repository metadata")
        return fallback_project_summaries(repositories)

    return normalize_project_summaries(items, repositories)


def normalize_project_summaries(items: Sequence[Any], repositories: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Keep entries that name a repository and carry a summary, in the stored shape."""

    urls = {repo.get("name"): repo.get("url") for repo in repositories}
    summaries: List[Dict[str, Any]] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        name = item.get("repository_name") or item.get("name") or ""
        summary = item.get("summary") or item.get("description") or ""
        if name and summary:
            url = item.get("repository_url") or urls.get(name)
            summaries.append({"repository_name": str(name), "repository_url": url, "summary": str(summary)})
    return summaries


def generate_project_summaries(repositories: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    if not repositories:
        return []
    text = generate_content(build_project_summaries_prompt(repositories), timeout=60)
    return parse_project_summaries(text, repositories)


def generate_value_proposition(employee: Mapping[str, Any]) -> str:
    return generate_content(build_value_proposition_prompt(employee))
