"""Audit helpers for follows, blocks and reports."""

from __future__ import annotations

import logging
from typing import Dict

from campusjam.infra.redis import redis_client
from campusjam.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

SOCIAL_EVENTS_STREAM = "x:social.events"


async def log_social_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	await redis_client.xadd(SOCIAL_EVENTS_STREAM, payload, maxlen=10_000, approximate=True)
	logger.info("social_event", extra=payload)


def inc_follow(action: str) -> None:
	obs_metrics.inc_follow(action)


def inc_block(action: str) -> None:
	obs_metrics.inc_block(action)


def inc_report() -> None:
	obs_metrics.inc_report()
