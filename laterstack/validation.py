"""Field validators returning tagged Valid/Invalid results."""

import math
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import AnyUrl, TypeAdapter, ValidationError

from laterstack.models.user import MAX_GOALS_LENGTH, MAX_READING_SPEED, MIN_READING_SPEED

T = TypeVar("T")

_URL_ADAPTER = TypeAdapter(AnyUrl)


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T
    ok: bool = True


@dataclass(frozen=True)
class Invalid:
    message: str
    ok: bool = False


@dataclass(frozen=True)
class Preferences:
    """Validated profile preferences."""

    interests: list[str]
    goals: str
    reading_speed: int


def validate_url(raw: object) -> Valid[str] | Invalid:
    """Accept only syntactically valid http(s) URLs. Returns the stripped input."""
    if not isinstance(raw, str) or not raw.strip():
        return Invalid("Please enter a valid URL")
    url = raw.strip()
    try:
        _URL_ADAPTER.validate_python(url)
    except ValidationError:
        return Invalid("Please enter a valid URL")
    if not url.startswith(("http://", "https://")):
        return Invalid("URL must start with http:// or https://")
    return Valid(url)


def parse_interests(raw: str | None) -> list[str]:
    """Split a comma-separated string into trimmed, non-empty, de-duplicated interests."""
    if not raw:
        return []
    interests: list[str] = []
    for part in raw.split(","):
        interest = part.strip()
        if interest and interest not in interests:
            interests.append(interest)
    return interests


def validate_goals(raw: str | None) -> Valid[str] | Invalid:
    goals = (raw or "").strip()
    if len(goals) > MAX_GOALS_LENGTH:
        return Invalid(f"Goals must be {MAX_GOALS_LENGTH} characters or less")
    return Valid(goals)


def validate_reading_speed(raw: object) -> Valid[int] | Invalid:
    """Coerce to a number and clamp into the supported words-per-minute range."""
    if isinstance(raw, bool):
        return Invalid("Reading speed must be a number")
    try:
        speed = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return Invalid("Reading speed must be a number")
    if not math.isfinite(speed):
        return Invalid("Reading speed must be a number")
    return Valid(int(min(MAX_READING_SPEED, max(MIN_READING_SPEED, round(speed)))))


def validate_profile(
    interests: str | None, goals: str | None, reading_speed: object
) -> Valid[Preferences] | Invalid:
    """Validate the profile form. Returns the first failing field's message."""
    goals_result = validate_goals(goals)
    if isinstance(goals_result, Invalid):
        return goals_result
    speed_result = validate_reading_speed(reading_speed)
    if isinstance(speed_result, Invalid):
        return speed_result
    return Valid(
        Preferences(
            interests=parse_interests(interests),
            goals=goals_result.value,
            reading_speed=speed_result.value,
        )
    )
