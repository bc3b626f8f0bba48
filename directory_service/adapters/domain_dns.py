"""DNS checks used when verifying a company's domain."""

from __future__ import annotations

import re
from typing import List

import dns.exception
import dns.resolver
from loguru import logger

from directory_service.domain.schemas import DomainValidation

_DOMAIN_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)*$")
_LIFETIME_SECONDS = 5.0


def _has_records(host: str, rdtype: str) -> bool:
    try:
        answer = dns.resolver.resolve(host, rdtype, lifetime=_LIFETIME_SECONDS)
    except dns.exception.DNSException:
        return False
    return len(answer) > 0


def validate_domain(domain: str) -> DomainValidation:
    """Check that *domain* has A or AAAA records and report whether it has MX records.

    Only the address records decide validity; a missing mail server is reported
    but does not fail verification.
    """

    host = (domain or "").strip().lower().rstrip(".")
    if not host:
        return DomainValidation(is_valid=False, errors=["Domain is empty"])
    if not _DOMAIN_RE.match(host):
        return DomainValidation(is_valid=False, errors=["Invalid domain format"])

    errors: List[str] = []
    has_dns = _has_records(host, "A") or _has_records(host, "AAAA")
    if not has_dns:
        errors.append(f"No A/AAAA records found for {host}")
    has_mail = _has_records(host, "MX")

    logger.info("domain check host={} dns={} mx={}", host, has_dns, has_mail)
    return DomainValidation(is_valid=has_dns, has_dns_records=has_dns, has_mail_server=has_mail, errors=errors)
