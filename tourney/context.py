"""Per-request caller context.

Built once per request from the verified identity token and passed explicitly
into every service call. Nothing about the caller is kept in module state.
"""

from dataclasses import dataclass, field
from uuid import uuid4

from tourney.utils.errors import ForbiddenError


@dataclass(frozen=True)
class RequestContext:
    """Who is calling, and with which capabilities."""

    user_id: str
    is_admin: bool = False
    trace_id: str = field(default_factory=lambda: str(uuid4()))

    def require_admin(self) -> None:
        if not self.is_admin:
            raise ForbiddenError()
