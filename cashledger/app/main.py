from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cashledger.app.api.v1.api import api_router
from cashledger.app.core.config import settings
from cashledger.app.core.logging import configure_logging
from cashledger.app.middleware.language import LanguageMiddleware
from cashledger.app.middleware.rate_limit import RateLimitMiddleware
from cashledger.app.middleware.request_id import RequestIDMiddleware
from cashledger.app.middleware.security import SecurityHeadersMiddleware
from cashledger.app.models import registry  # noqa: F401

configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)

app = FastAPI(title="Cash Ledger")

# ─── CORS — restrict to configured origins ───────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Accept-Language", "X-Request-ID"],
    expose_headers=["X-Request-ID", "Retry-After"],
)

# ─── Custom middleware (outermost executes first) ─────────────────────────────
app.add_middleware(RateLimitMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LanguageMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}
