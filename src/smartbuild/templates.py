# templates.py
from __future__ import annotations

import re
from datetime import datetime, timezone as dt_timezone
from typing import Dict, Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import BuildPlanError
from .model import GitRef

ALLOWED_TEMPLATE_VARIABLES = ("tag", "branch", "sha", "timestamp")
TIMESTAMP_FORMAT = "%Y%m%d%H%M"
SHORT_SHA_LENGTH = 7

_VARIABLE_PATTERN = re.compile(r"\{(\w+)\}")


def render_tags(templates: Iterable[str], variables: Dict[str, str]) -> List[str]:
    """
    Substitute {key} placeholders for every key present in variables.

    Placeholders without a value are left as-is.
    """
    rendered: List[str] = []
    for template in templates:
        result = template
        for key, value in variables.items():
            result = result.replace("{" + key + "}", value)
        rendered.append(result)
    return rendered


def validate_template_variables(
    templates: Iterable[str],
    available: Sequence[str] = ALLOWED_TEMPLATE_VARIABLES,
) -> None:
    """
    Fail fast on placeholders that no event can ever fill.

    Every unknown name is reported once, in the order first seen.

    Raises:
        BuildPlanError: kind="template"
    """
    missing: List[str] = []
    for template in templates:
        for name in _VARIABLE_PATTERN.findall(template):
            if name not in available and name not in missing:
                missing.append(name)

    if missing:
        raise BuildPlanError(
            kind="template",
            message="Invalid template variables found: "
            + ", ".join("{" + name + "}" for name in missing),
            details={"invalid": missing},
            suggestion="Available variables: " + ", ".join("{" + name + "}" for name in available),
        )


def format_timestamp(tz_name: str, now: Optional[datetime] = None) -> str:
    """Render `now` (default: current time) as YYYYMMDDHHMM in tz_name."""
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise BuildPlanError(
            kind="input",
            message=f"Unknown timezone: {tz_name}",
            suggestion='Use an IANA timezone name such as "UTC" or "Asia/Tokyo".',
        ) from e

    if now is None:
        now = datetime.now(dt_timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=dt_timezone.utc)
    return now.astimezone(zone).strftime(TIMESTAMP_FORMAT)


def create_template_variables(
    git_ref: GitRef,
    sha: str,
    timezone: Optional[str],
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """
    Build the variable set for one run.

    Always has sha (short form); branch/tag follow the ref; timestamp only
    when a timezone is configured.
    """
    variables: Dict[str, str] = {"sha": sha[:SHORT_SHA_LENGTH]}
    if git_ref.branch:
        variables["branch"] = git_ref.branch
    if git_ref.tag:
        variables["tag"] = git_ref.tag
    if timezone:
        variables["timestamp"] = format_timestamp(timezone, now)
    return variables
