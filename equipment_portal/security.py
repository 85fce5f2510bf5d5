import hmac
import logging
from datetime import datetime, timedelta, UTC
from typing import Optional

from fastapi import Depends, Request
from jose import JWTError, jwt

from equipment_portal.config import Settings, get_settings
from equipment_portal.errors import LoginRequired

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_COOKIE = "session"


class SessionGate:
    """
    Fixed username/password login backed by a signed session cookie.
    is_authenticated() is the only check the rest of the app relies on.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def check_credentials(self, username: str, password: str) -> bool:
        if not self.settings.login_configured:
            logger.warning("LOGIN_USERNAME/LOGIN_PASSWORD are not set; rejecting login")
            return False
        user_ok = hmac.compare_digest(username.encode(), self.settings.login_username.encode())
        pass_ok = hmac.compare_digest(password.encode(), self.settings.login_password.encode())
        return user_ok and pass_ok

    def issue_token(self, username: str) -> str:
        expire = datetime.now(UTC) + timedelta(minutes=self.settings.session_max_age_minutes)
        return jwt.encode({"sub": username, "exp": expire}, self.settings.secret_key, algorithm=ALGORITHM)

    def session_user(self, request: Request) -> Optional[str]:
        token = request.cookies.get(SESSION_COOKIE)
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.settings.secret_key, algorithms=[ALGORITHM])
        except JWTError:
            return None
        username = payload.get("sub")
        if username != self.settings.login_username:
            return None
        return username

    def is_authenticated(self, request: Request) -> bool:
        return self.session_user(request) is not None


def get_session_gate(settings: Settings = Depends(get_settings)) -> SessionGate:
    return SessionGate(settings)


async def require_login(request: Request, gate: SessionGate = Depends(get_session_gate)) -> None:
    if not gate.is_authenticated(request):
        raise LoginRequired()
