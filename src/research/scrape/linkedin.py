"""LinkedIn URL classification and dataset payload normalization."""

from __future__ import annotations

import re
from typing import Any, Literal

from .registry import url_domain, url_match_key

TargetKind = Literal["linkedin_profile", "generic"]

PROFILE_KIND: TargetKind = "linkedin_profile"

# Matched against host + path, e.g. "www.linkedin.com/in/jdoe"
LINKEDIN_HOST_PATTERN = r"^([\w-]+\.)*linkedin\.com(/|$)"
LINKEDIN_PROFILE_PATTERN = r"^([\w-]+\.)*linkedin\.com/in/[^/]+"

NA = "N/A"


def is_linkedin_url(url: str) -> bool:
    """Return True for any URL hosted on linkedin.com."""
    return re.match(LINKEDIN_HOST_PATTERN, url_domain(url).lower() + "/") is not None


def classify_url(url: str) -> TargetKind:
    """Classify a URL as a LinkedIn personal profile or a generic page."""
    if re.match(LINKEDIN_PROFILE_PATTERN, url_match_key(url)):
        return PROFILE_KIND
    return "generic"


def _first_record(payload: Any) -> dict[str, Any]:
    """Snapshots come back as a list of records; only the first is used."""
    if isinstance(payload, list):
        payload = payload[0] if payload else {}
    return payload if isinstance(payload, dict) else {}


def _field(record: dict[str, Any], key: str, default: str = NA) -> str:
    value = record.get(key)
    if value is None or value == "":
        return default
    return str(value)


def _records(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def profile_name(payload: Any) -> str:
    return _field(_first_record(payload), "name", default="")


def parse_profile(payload: Any) -> str:
    """Render a profile snapshot as a fixed-order descriptive text block.

    Sections always appear in the order About, Current Company, Experience,
    Education, Honors and Awards. Missing values render as ``N/A`` so the
    downstream prompt layout never shifts.
    """
    record = _first_record(payload)
    lines: list[str] = [f"About: {_field(record, 'about')}"]

    company = record.get("current_company")
    company = company if isinstance(company, dict) else {}
    lines.append(
        f"Current Company: {_field(company, 'title')}(title) "
        f"at {_field(company, 'name')}(company)"
    )

    lines.append("Experience:")
    experience = _records(record.get("experience"))
    for exp in experience:
        lines.append(
            f"  - {_field(exp, 'title')}(title) at {_field(exp, 'company')}(company) "
            f"({_field(exp, 'location')})(location) "
            f"from {_field(exp, 'start_date')}(start_date) "
            f"to {_field(exp, 'end_date', default='Present')}(end_date)"
        )
        lines.append(f"    Description: {_field(exp, 'description_html')}")
    if not experience:
        lines.append(f"  - {NA}")

    lines.append("Education:")
    education = _records(record.get("education"))
    for edu in education:
        lines.append(
            f"  - {_field(edu, 'title')}(title) ({_field(edu, 'degree')})(degree) "
            f"in {_field(edu, 'field')}(field) "
            f"from {_field(edu, 'start_year')}(start_year) "
            f"to {_field(edu, 'end_year')}(end_year)"
        )
        lines.append(f"    Description: {_field(edu, 'description_html')}")
    if not education:
        lines.append(f"  - {NA}")

    lines.append("Honors and Awards:")
    honors = _records(record.get("honors_and_awards"))
    for award in honors:
        lines.append(
            f"  - {_field(award, 'title')}(title) "
            f"from {_field(award, 'publication')}(publication) "
            f"on {_field(award, 'date')}(date)"
        )
        lines.append(f"    Description: {_field(award, 'description')}")
    if not honors:
        lines.append(f"  - {NA}")

    return "\n".join(lines).strip()


def parse_posts(payload: Any) -> str:
    """Join the text body of every post, one per line."""
    if isinstance(payload, dict):
        payload = [payload]
    posts = _records(payload)
    return "\n".join(post.get("post_text") or "" for post in posts).strip()
