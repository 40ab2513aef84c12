"""FastAPI middleware that ties every request to a chat session ID."""

import re
import uuid
from typing import Optional
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

SESSION_HEADER = "X-Session-ID"
_VALID_SESSION_ID = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


class SessionMiddleware(BaseHTTPMiddleware):
    """Reads the session ID from the cookie or header, or issues a new one."""

    def __init__(self, app, session_cookie_name: str = "travel_session_id"):
        """Initializes the middleware."""
        super().__init__(app)
        self.session_cookie_name = session_cookie_name

    async def dispatch(self, request: Request, call_next):
        """Attaches the session ID to request state and echoes it back."""
        session_id = self._get_session_id(request)
        new_session = session_id is None
        if new_session:
            session_id = uuid.uuid4().hex

        request.state.session_id = session_id
        response = await call_next(request)

        # Header for API clients, cookie for browsers
        response.headers[SESSION_HEADER] = session_id
        if new_session and response.status_code < 400:
            response.set_cookie(
                key=self.session_cookie_name,
                value=session_id,
                max_age=3600 * 24,
                httponly=True,
                samesite="lax",
            )

        return response

    def _get_session_id(self, request: Request) -> Optional[str]:
        """Session ID from the header, then the cookie; malformed IDs are ignored."""
        for candidate in (
            request.headers.get(SESSION_HEADER),
            request.cookies.get(self.session_cookie_name),
        ):
            if candidate and _VALID_SESSION_ID.match(candidate):
                return candidate
        return None
