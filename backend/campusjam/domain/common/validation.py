"""Input normalisation helpers shared by the domain services."""

from __future__ import annotations

from uuid import UUID

from campusjam.domain.common.errors import InvalidArgument

MAX_MESSAGE_LENGTH = 2000
MAX_REASON_LENGTH = 1000


def parse_id(value: object, field: str = "id") -> str:
	"""Return the canonical string form of a UUID identifier."""
	if value is None or value == "":
		raise InvalidArgument(f"missing_{field}", f"{field} is required.")
	try:
		return str(UUID(str(value).strip()))
	except ValueError:
		raise InvalidArgument(f"invalid_{field}", f"{field} is not a valid identifier.") from None


def clean_text(value: object, *, field: str, max_length: int) -> str:
	"""Trim free text and enforce non-empty and maximum length."""
	if not isinstance(value, str):
		raise InvalidArgument(f"missing_{field}", f"{field} is required.")
	text = value.strip()
	if not text:
		raise InvalidArgument(f"missing_{field}", f"{field} is required.")
	if len(text) > max_length:
		raise InvalidArgument(f"{field}_too_long", f"{field} must be at most {max_length} characters.")
	return text
