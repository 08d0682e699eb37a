"""Base schema with the camelCase wire format used by every endpoint."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PublicUser(CamelModel):
	"""Minimal public view of a user; never carries credentials."""

	id: str
	name: str
	email: str
	avatar_url: Optional[str] = None
