"""Chat domain exports."""

from .service import (
	get_conversations,
	get_direct_messages,
	get_session_messages,
	mark_as_read,
	send_direct_message,
	send_session_message,
)

__all__ = [
	"get_conversations",
	"get_direct_messages",
	"get_session_messages",
	"mark_as_read",
	"send_direct_message",
	"send_session_message",
]
