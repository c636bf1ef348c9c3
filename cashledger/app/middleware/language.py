"""Per-request message language."""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cashledger.app.core.i18n import negotiate


class LanguageMiddleware(BaseHTTPMiddleware):
    """Store the negotiated language on ``request.state.language``.

    Error details and import row reasons are rendered in it, and it is
    echoed back as ``Content-Language``.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.language = negotiate(request.headers.get("Accept-Language"))
        response = await call_next(request)
        response.headers["Content-Language"] = request.state.language
        return response
