"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from persona_studio.core.config import get_settings
from persona_studio.core.logging import setup_logging

# Setup logging
logger = setup_logging("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the session at startup unless one was injected (tests)."""
    if getattr(app.state, "session", None) is None:
        from persona_studio.services.session import PersonaStudioSession

        try:
            app.state.session = PersonaStudioSession.from_settings(get_settings())
            logger.info("Session initialized")
        except Exception as exc:
            logger.error(
                "Session initialization failed; running in degraded mode",
                exc_info=True,
                extra={"service": "main", "error_type": type(exc).__name__},
            )
            # Continue without a session; endpoints return 503 until fixed

    yield


# Create FastAPI app
app = FastAPI(
    title="Persona Studio",
    description="Persona-driven influencer image generation on Gemini",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[f"http://localhost:{settings.frontend_port}"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
from persona_studio.api.session import router as session_router  # noqa: E402

app.include_router(session_router)


@app.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Always returns HTTP 200; `services.session` and `services.credential`
    report the actual readiness.
    """
    session = getattr(request.app.state, "session", None)
    has_credential = session is not None and session.credentials.has_credential()

    logger.info("Health check requested")
    return {
        "status": "ok",
        "version": app.version,
        "services": {
            "session": "ok" if session is not None else "unavailable",
            "credential": "present" if has_credential else "missing",
        },
    }


def run() -> None:
    """Serve the app with uvicorn on the configured host/port."""
    import uvicorn

    cfg = get_settings()
    uvicorn.run("persona_studio.main:app", host=cfg.backend_host, port=cfg.backend_port)
