# qcomposer/auth.py
from __future__ import annotations

import base64
import binascii
import secrets
from typing import Iterable, Optional, Set

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from qcomposer.settings import get_settings


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """
    HTTP Basic Auth for the composer API.

    Excluded paths are exact ("/health") or prefix patterns ("/docs*").
    """

    def __init__(
        self,
        app,
        *,
        username: str,
        password: str,
        realm: str = "Quantum Circuit Composer",
        exclude_paths: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)

        user_str = (username or "").strip()
        pass_str = (password or "").strip()
        if not user_str or not pass_str:
            raise RuntimeError("BasicAuthMiddleware: username and password are required.")

        self._user_b = user_str.encode("utf-8")
        self._pass_b = pass_str.encode("utf-8")
        self.realm = realm

        raw = list(exclude_paths or ["/health"])
        self._exact: Set[str] = {p for p in raw if not p.endswith("*")}
        self._prefixes = tuple(p[:-1] for p in raw if p.endswith("*"))

    def _is_excluded(self, path: str) -> bool:
        return path in self._exact or path.startswith(self._prefixes)

    def _challenge(self) -> Response:
        return JSONResponse(
            {"detail": "Not authenticated"},
            status_code=401,
            headers={"WWW-Authenticate": f'Basic realm="{self.realm}"'},
        )

    def _credentials_ok(self, header: Optional[str]) -> bool:
        if not header or not header.startswith("Basic "):
            return False
        try:
            raw = base64.b64decode(header.split(" ", 1)[1].strip(), validate=True).decode("utf-8")
            username, password = raw.split(":", 1)
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return False
        user_ok = secrets.compare_digest(username.encode("utf-8"), self._user_b)
        pass_ok = secrets.compare_digest(password.encode("utf-8"), self._pass_b)
        return user_ok and pass_ok

    async def dispatch(self, request, call_next):
        if self._is_excluded(request.url.path):
            return await call_next(request)
        if not self._credentials_ok(request.headers.get("authorization")):
            return self._challenge()
        return await call_next(request)


def enable_basic_auth(
    app,
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
    exclude_paths: Optional[Iterable[str]] = None,
) -> bool:
    """
    Install Basic Auth when settings.ENABLE_AUTH is set.

    Returns whether the middleware was installed. Raises RuntimeError when auth
    is enabled without credentials (QCOMPOSER_USER / QCOMPOSER_PASS).
    """
    settings = get_settings()
    if not settings.ENABLE_AUTH:
        return False

    u = (username or settings.USER or "").strip()
    p = (password or settings.PASS or "").strip()
    if not u or not p:
        raise RuntimeError("Auth is enabled but credentials are missing. Set QCOMPOSER_USER / QCOMPOSER_PASS.")

    app.add_middleware(
        BasicAuthMiddleware,
        username=u,
        password=p,
        exclude_paths=exclude_paths or ["/health"],
    )
    return True
