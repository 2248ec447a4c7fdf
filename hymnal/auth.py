from abc import ABC, abstractmethod
from functools import wraps
from typing import Optional
import logging

import requests
from flask import current_app, request
from flask_login import AnonymousUserMixin, LoginManager, UserMixin, current_user

from hymnal.api_responses import ErrorCode, error_response
from hymnal.models.access import AuthState

# Retrieve main logger
logger = logging.getLogger("main")

IDENTITY_LOOKUP_URL = "https://identitytoolkit.googleapis.com/v1/accounts:lookup"


class AuthProvider(ABC):
    """Turns a bearer token into an authenticated state"""

    @abstractmethod
    def verify(self, token: str) -> Optional[AuthState]:
        """Return the signed-in state, or None when the token is not valid"""


class FirebaseTokenAuthProvider(AuthProvider):
    """Validates Firebase ID tokens with the Identity Toolkit accounts:lookup endpoint"""

    def __init__(self, api_key: str, timeout: float = 10, session=None):
        if not api_key:
            raise ValueError("Token lookup requires an api key")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def verify(self, token):
        if not token:
            return None
        try:
            resp = self.session.post(
                IDENTITY_LOOKUP_URL,
                params={"key": self.api_key},
                json={"idToken": token},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Token lookup failed: {e}")
            return None

        if resp.status_code != 200:
            logger.debug(f"Token rejected (HTTP {resp.status_code})")
            return None
        try:
            users = resp.json().get("users") or []
        except ValueError:
            logger.warning("Token lookup returned invalid JSON")
            return None
        if not users or not users[0].get("localId"):
            return None
        return AuthState.user(users[0]["localId"], users[0].get("email"))


def create_auth_provider(settings: dict) -> Optional[AuthProvider]:
    api_key = settings.get("remote", {}).get("api_key")
    if not api_key:
        logger.info("No api key configured, every request is anonymous")
        return None
    return FirebaseTokenAuthProvider(api_key, timeout=settings["remote"].get("timeout", 10))


class AuthUser(UserMixin):
    def __init__(self, state: AuthState):
        self.state = state

    def get_id(self):
        return self.state.uid


class AnonymousUser(AnonymousUserMixin):
    state = AuthState.anonymous()


login_manager = LoginManager()
login_manager.anonymous_user = AnonymousUser


@login_manager.request_loader
def load_user_from_request(req):
    header = req.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    provider = current_app.extensions.get("hymnal_auth_provider")
    if provider is None:
        return None
    state = provider.verify(header.split(" ", 1)[1].strip())
    return AuthUser(state) if state else None


@login_manager.unauthorized_handler
def unauthorized_json():
    return error_response(ErrorCode.UNAUTHORIZED, status_code=401, log_error=False)


def current_auth_state() -> AuthState:
    """Auth state of the current request (anonymous when no valid token)"""
    return getattr(current_user, "state", None) or AuthState.anonymous()


def admin_required(f):
    @wraps(f)
    def decorated_view(*args, **kwargs):
        auth = current_auth_state()
        if not auth.is_authenticated:
            return login_manager.unauthorized()
        status = current_app.extensions["hymnal"].authorization.check_admin_status(auth)
        if not status["is_admin"]:
            logger.warning(f"Admin endpoint {request.path} refused for {auth.uid}")
            return error_response(ErrorCode.FORBIDDEN, status_code=403, log_error=False)
        return f(*args, **kwargs)

    return decorated_view
