import re

from pydantic import BaseModel

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def normalize_time(value: str) -> str:
    candidate = value.strip()
    # Accept H:MM so stored values stay zero-padded and compare as strings.
    if re.match(r"^\d:[0-5]\d$", candidate):
        candidate = f"0{candidate}"
    if not TIME_PATTERN.match(candidate):
        raise ValueError("Time must be in HH:MM 24-hour format")
    return candidate


def normalize_day(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class ActionResult(BaseModel):
    success: bool
    message: str
