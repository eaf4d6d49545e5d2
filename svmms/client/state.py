"""
Client-side authentication state and the reducer that evolves it.
"""
import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from svmms.models.user import UserRole


class ActionType(str, enum.Enum):
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGOUT = "LOGOUT"
    LOADING = "LOADING"
    STOP_LOADING = "STOP_LOADING"
    UPDATE_USER = "UPDATE_USER"
    REFRESH_TOKEN = "REFRESH_TOKEN"


class Action(BaseModel):
    type: ActionType
    payload: dict[str, Any] = Field(default_factory=dict)


class AuthState(BaseModel):
    """Snapshot of who is signed in. Instances are never mutated."""
    user: Optional[dict[str, Any]] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    is_authenticated: bool = False
    role: Optional[UserRole] = None
    loading: bool = True

    model_config = ConfigDict(frozen=True)


def _role_of(user: Optional[dict]) -> Optional[UserRole]:
    if not user or user.get("role") is None:
        return None
    return UserRole(user["role"])


def auth_reducer(state: AuthState, action: Action) -> AuthState:
    """
    Return the state that follows ``action``.

    ``LOGIN_SUCCESS`` expects ``user``, ``accessToken`` and ``refreshToken`` in
    the payload, ``UPDATE_USER`` a ``user`` and ``REFRESH_TOKEN`` an
    ``accessToken``.
    """
    payload = action.payload

    if action.type == ActionType.LOGIN_SUCCESS:
        user = payload["user"]
        return AuthState(
            user=user,
            access_token=payload["accessToken"],
            refresh_token=payload.get("refreshToken"),
            is_authenticated=True,
            role=_role_of(user),
            loading=False,
        )

    if action.type == ActionType.LOGOUT:
        return AuthState(loading=False)

    if action.type == ActionType.LOADING:
        return state.model_copy(update={"loading": True})

    if action.type == ActionType.STOP_LOADING:
        return state.model_copy(update={"loading": False})

    if action.type == ActionType.UPDATE_USER:
        user = {**(state.user or {}), **payload["user"]}
        return state.model_copy(update={"user": user, "role": _role_of(user)})

    if action.type == ActionType.REFRESH_TOKEN:
        return state.model_copy(update={"access_token": payload["accessToken"]})

    return state
