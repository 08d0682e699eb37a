"""Social domain exports."""

from .exceptions import (  # noqa: F401
	AlreadyBlocked,
	AlreadyFollowing,
	BlockLimitExceeded,
	FollowBlocked,
	FollowLimitExceeded,
	SelfActionError,
)
from .schemas import BlockRequest, FollowRequest, ReportRequest, ReportResponse  # noqa: F401
