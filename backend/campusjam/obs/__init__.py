"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from campusjam.obs import logging as obs_logging
from campusjam.obs import middleware
from campusjam.settings import settings

_initialised = False


def init(app: FastAPI) -> None:
	"""Install request middleware and, when observability is on, JSON logging."""
	global _initialised
	if _initialised:
		return
	middleware.install(app, enabled=settings.obs_enabled)
	if settings.obs_enabled:
		obs_logging.configure_logging()
	_initialised = True


__all__ = ["init"]
