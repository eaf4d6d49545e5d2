"""
Python client for the SVMMS API.

``AuthStore`` keeps the signed-in user and tokens, ``ApiClient`` talks to the
REST API and ``route_guard`` decides whether a screen may be shown.
"""
from svmms.client.api import ApiClient, ApiError
from svmms.client.guard import RouteDecision, route_guard
from svmms.client.state import Action, ActionType, AuthState, auth_reducer
from svmms.client.storage import FileTokenStorage, MemoryTokenStorage, TokenStorage
from svmms.client.store import AuthStore

__all__ = [
    "ApiClient", "ApiError",
    "RouteDecision", "route_guard",
    "Action", "ActionType", "AuthState", "auth_reducer",
    "FileTokenStorage", "MemoryTokenStorage", "TokenStorage",
    "AuthStore",
]
