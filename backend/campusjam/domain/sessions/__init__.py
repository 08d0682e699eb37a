"""Session domain exports."""

from .models import Session, SessionStatus, SkillLevel  # noqa: F401
from .schemas import CreateSessionRequest, SessionResponse, UpdateSessionRequest  # noqa: F401
