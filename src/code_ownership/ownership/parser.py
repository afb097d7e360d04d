"""Turns raw oracle output into a validated owner.

The oracle prints a single JSON object.  Only two fields matter:

    {"team_name": "Payments", "team_yml": "config/teams/payments.yml"}

A payload that cannot be decoded is a failure.  A payload that decodes but
does not name a team (missing fields, or the ``Unowned`` sentinel) is a
successful answer meaning "nobody owns this file".
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from code_ownership.ownership.protocol import UNOWNED_SENTINEL

logger = logging.getLogger("code_ownership.ownership.parser")

REQUIRED_FIELDS = ("team_name", "team_yml")


class NoOwnerReason(str, Enum):
    INCOMPLETE = "incomplete"
    UNOWNED = "unowned"


class PayloadError(str, Enum):
    EMPTY_OR_MALFORMED = "empty_or_malformed"


@dataclass(frozen=True)
class ParsedOwner:
    team_name: str
    team_config_ref: str


@dataclass(frozen=True)
class NoOwner:
    reason: NoOwnerReason


@dataclass(frozen=True)
class ValidationFailure:
    error: PayloadError
    detail: str = ""


ParseResult = ParsedOwner | NoOwner | ValidationFailure


def parse(raw: str) -> ParseResult:
    """Validate an oracle payload.

    Args:
        raw: The oracle's stdout.

    Returns:
        ParsedOwner when a team owns the file, NoOwner when the oracle ran
        but asserted no owner, ValidationFailure when the payload is unusable.
    """
    text = (raw or "").strip()
    if not text:
        return ValidationFailure(PayloadError.EMPTY_OR_MALFORMED, "empty output")

    try:
        obj: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("Error parsing command output: %s", exc)
        return ValidationFailure(PayloadError.EMPTY_OR_MALFORMED, f"invalid JSON: {exc}")

    if not isinstance(obj, dict):
        logger.error("Error parsing command output: expected an object, got %s", type(obj).__name__)
        return ValidationFailure(
            PayloadError.EMPTY_OR_MALFORMED,
            f"expected a JSON object, got {type(obj).__name__}",
        )

    missing = [name for name in REQUIRED_FIELDS if not isinstance(obj.get(name), str)]
    for name in missing:
        logger.warning("Missing expected property `%s` in command output", name)
    if missing:
        return NoOwner(NoOwnerReason.INCOMPLETE)

    if obj["team_name"] == UNOWNED_SENTINEL:
        return NoOwner(NoOwnerReason.UNOWNED)

    return ParsedOwner(team_name=obj["team_name"], team_config_ref=obj["team_yml"])
