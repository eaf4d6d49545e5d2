"""
Route guarding for screens that need a signed-in user.
"""
import enum
from typing import Iterable, Optional

from svmms.client.state import AuthState
from svmms.models.user import UserRole


class RouteDecision(str, enum.Enum):
    WAIT = "wait"
    REDIRECT_LOGIN = "redirect_login"
    ALLOW = "allow"


LOGIN_PATH = "/login"


def route_guard(state: AuthState, roles: Optional[Iterable[UserRole]] = None) -> RouteDecision:
    """
    Decide what to do with a protected screen.

    Nothing is decided while the store is still loading. An empty or missing
    ``roles`` admits any signed-in user.
    """
    if state.loading:
        return RouteDecision.WAIT
    if not state.is_authenticated:
        return RouteDecision.REDIRECT_LOGIN

    allowed = frozenset(roles or ())
    if allowed and state.role not in allowed:
        return RouteDecision.REDIRECT_LOGIN
    return RouteDecision.ALLOW
