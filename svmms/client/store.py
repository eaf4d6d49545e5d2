"""
Authentication store: the client's single source of truth for who is signed in.
"""
import logging
from typing import Callable, Optional

import requests

from svmms.client.api import ApiClient, ApiError
from svmms.client.state import Action, ActionType, AuthState, auth_reducer
from svmms.client.storage import MemoryTokenStorage, TokenStorage

logger = logging.getLogger(__name__)


class AuthStore:
    """
    Holds an ``AuthState``, applies actions to it and keeps ``storage`` and the
    API client's bearer token in step with it.
    """

    def __init__(self, api: ApiClient, storage: Optional[TokenStorage] = None):
        self.api = api
        self.storage = storage if storage is not None else MemoryTokenStorage()
        self.state = AuthState()
        self._listeners: list[Callable[[AuthState], None]] = []

    def subscribe(self, listener: Callable[[AuthState], None]) -> Callable[[], None]:
        """Call ``listener`` after every dispatch. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action_type: ActionType, **payload) -> AuthState:
        self.state = auth_reducer(self.state, Action(type=action_type, payload=payload))
        self.api.access_token = self.state.access_token
        for listener in list(self._listeners):
            listener(self.state)
        return self.state

    def initialize(self) -> AuthState:
        """
        Restore a stored session, but only after the API accepts its token.
        """
        self.dispatch(ActionType.LOADING)
        stored = self.storage.load()
        token = stored.get("accessToken")
        if not token:
            return self.dispatch(ActionType.STOP_LOADING)

        self.api.access_token = token
        try:
            profile = self.api.get("/auth/profile")
        except ApiError as exc:
            logger.info("Stored session rejected (%s): %s", exc.status_code, exc.message)
            self.storage.clear()
            return self.dispatch(ActionType.LOGOUT)
        except requests.RequestException as exc:
            logger.warning("Could not verify stored session: %s", exc)
            self.storage.clear()
            return self.dispatch(ActionType.LOGOUT)

        return self.dispatch(
            ActionType.LOGIN_SUCCESS,
            user=profile["user"],
            accessToken=token,
            refreshToken=stored.get("refreshToken"),
        )

    def login(self, email: str, password: str) -> AuthState:
        self.dispatch(ActionType.LOADING)
        try:
            body = self.api.post("/auth/login", json={"email": email, "password": password})
        except (ApiError, requests.RequestException):
            self.dispatch(ActionType.STOP_LOADING)
            raise
        self.storage.save(body)
        return self.dispatch(
            ActionType.LOGIN_SUCCESS,
            user=body["user"],
            accessToken=body["accessToken"],
            refreshToken=body["refreshToken"],
        )

    def refresh(self) -> AuthState:
        """Trade the refresh token for a new access token."""
        body = self.api.post("/auth/refresh-token", json={"refreshToken": self.state.refresh_token})
        self.storage.save({"accessToken": body["accessToken"]})
        return self.dispatch(ActionType.REFRESH_TOKEN, accessToken=body["accessToken"])

    def update_user(self, user: dict) -> AuthState:
        self.storage.save({"user": {**(self.state.user or {}), **user}})
        return self.dispatch(ActionType.UPDATE_USER, user=user)

    def logout(self) -> AuthState:
        if self.state.refresh_token:
            try:
                self.api.post("/auth/logout", json={"refreshToken": self.state.refresh_token})
            except ApiError as exc:
                logger.warning("Logout request failed: %s", exc.message)
            except requests.RequestException as exc:
                logger.warning("Logout request failed: %s", exc)
        self.storage.clear()
        return self.dispatch(ActionType.LOGOUT)
