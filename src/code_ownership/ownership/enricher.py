"""Best-effort enrichment of a team config with its Slack channel."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("code_ownership.ownership.enricher")

CHANNEL_PREFIX = "#"


def read_slack_channel(team_config_path: Path) -> str | None:
    """Return ``slack.room_for_humans`` without its leading ``#``, or None."""
    try:
        data: Any = yaml.safe_load(team_config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.debug("Cannot load team config %s: %s", team_config_path, exc)
        return None

    slack = data.get("slack") if isinstance(data, dict) else None
    room = slack.get("room_for_humans") if isinstance(slack, dict) else None
    if not isinstance(room, str):
        logger.debug("No slack.room_for_humans in %s", team_config_path)
        return None

    room = room.strip()
    if room.startswith(CHANNEL_PREFIX):
        room = room[len(CHANNEL_PREFIX):]
    return room or None


class ConfigEnricher:
    """Reads team config documents off the event loop."""

    async def enrich(self, team_config_path: str | Path) -> str | None:
        return await asyncio.to_thread(read_slack_channel, Path(team_config_path))
