"""Canned responses used when Gemini or a downstream microservice is unavailable."""

from __future__ import annotations

import copy
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from loguru import logger

from directory_service.adapters.gemini_client import normalize_project_summaries
from directory_service.config import settings

SKILLS_FALLBACK: Dict[str, Any] = {
    "user_id": 0,
    "competencies": [
        {
            "name": "Software Development",
            "nested_competencies": [
                {
                    "name": "Frontend Development",
                    "nested_competencies": [
                        {
                            "name": "JavaScript Frameworks",
                            "skills": [
                                {"name": "React", "verified": False},
                                {"name": "JavaScript", "verified": False},
                                {"name": "TypeScript", "verified": False},
                            ],
                        }
                    ],
                },
                {
                    "name": "Backend Development",
                    "nested_competencies": [
                        {
                            "name": "Server Technologies",
                            "skills": [
                                {"name": "Node.js", "verified": False},
                                {"name": "Python", "verified": False},
                            ],
                        }
                    ],
                },
            ],
        }
    ],
    "relevance_score": 75.5,
    "gap": {"missing_skills": ["Docker", "Kubernetes", "AWS"]},
}

_BUILTIN: Dict[str, Dict[str, Any]] = {"skills-engine": {"normalize-skills": SKILLS_FALLBACK}}


@lru_cache(maxsize=1)
def _load(path: str | None) -> Dict[str, Any]:
    if not path:
        return {}
    file_path = Path(path)
    if not file_path.exists():
        logger.warning("Mock data file {} does not exist", file_path)
        return {}
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Mock data file {} could not be read: {}", file_path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def mock_catalog() -> Dict[str, Any]:
    return _load(settings.mock_data_path)


def service_key(service: str) -> str:
    """``learning_analytics`` -> ``learning-analytics`` as used in the mock file."""

    return service.replace("_", "-").lower()


def get_mock_data(service: str, operation: str) -> Any | None:
    """Return a deep copy of the canned payload for ``service``/``operation``, if any."""

    key = service_key(service)
    for source in (mock_catalog(), _BUILTIN):
        value = (source.get(key) or {}).get(operation)
        if value is not None:
            return copy.deepcopy(value)
    return None


def mock_bio(employee: Mapping[str, Any]) -> str:
    name = employee.get("full_name") or "This employee"
    role = employee.get("current_role_in_company") or "professional"
    template = (mock_catalog().get("gemini") or {}).get("bio")
    if template:
        return str(template).replace("{{name}}", name).replace("{{role}}", role)
    return (
        f"{name} is a {role} with expertise in software development and technology. "
        "They bring valuable experience and skills to their team, contributing to innovative "
        "projects and solutions."
    )


def mock_project_summaries(repositories: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    if not repositories:
        return []
    canned = (mock_catalog().get("gemini") or {}).get("project_summaries")
    if isinstance(canned, list):
        usable = normalize_project_summaries(canned[: len(repositories)], repositories)
        if usable:
            return usable
        logger.warning("Mock project summaries have no usable entries; using repository metadata")
    summaries = []
    for repo in repositories[:20]:
        if not repo.get("name"):
            continue
        suffix = " (forked)" if repo.get("is_fork") else ""
        summaries.append(
            {
                "repository_name": repo["name"],
                "repository_url": repo.get("url"),
                "summary": repo.get("description")
                or f"A {repo.get('language') or 'software'} project{suffix} that demonstrates "
                "technical skills and development experience.",
            }
        )
    return summaries
