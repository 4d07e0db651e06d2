"""PlantOps Notifications FastAPI application.

Web server that sends notifications and serves the inbox, preference and
template APIs. Commands are processed synchronously per request inside the
notifications domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from pyproject.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from notifications.domain import notifications
from notifications.utils.logging import configure_logging
from protean.integrations.fastapi import register_exception_handlers

configure_logging()
notifications.init()

_DOMAIN_PREFIX = "/notifications"


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="PlantOps Notifications API",
    description="Multi-channel notification fan-out for manufacturing operations",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ValidationError -> 400, ObjectNotFoundError -> 404
register_exception_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the notifications domain context for API requests."""
    if request.url.path.startswith(_DOMAIN_PREFIX):
        with notifications.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from notifications.api import preference_router, router, template_router  # noqa: E402

# Preference and template routes first so their literal segments win over /{notification_id}
app.include_router(preference_router)
app.include_router(template_router)
app.include_router(router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "notifications": {"name": notifications.name},
            },
        }
    )
