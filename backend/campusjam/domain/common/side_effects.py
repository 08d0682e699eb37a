"""Dispatch for best-effort side effects (notifications, realtime pushes)."""

from __future__ import annotations

import logging
from typing import Any, Awaitable

from campusjam.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


async def best_effort(label: str, effect: Awaitable[Any], **context: str) -> bool:
	"""Await ``effect`` and log any failure instead of raising it.

	Returns True when the effect completed. The triggering operation has
	already committed, so nothing is rolled back on failure.
	"""
	try:
		await effect
	except Exception:
		logger.exception("side_effect_failed", extra={"effect": label, **context})
		obs_metrics.inc_side_effect_failure(label)
		return False
	return True
