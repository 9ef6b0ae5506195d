"""FastAPI application entry point."""
from fastapi import FastAPI

from app.exception_handlers import register_exception_handlers
from app.logging_config import configure_logging
from app.routers import analysis, health, rag


configure_logging()

app = FastAPI(
    title="Runs AI Analyzer API",
    description="AI-powered Garmin run analysis with a semantic cache in front of Claude.",
)
register_exception_handlers(app)


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Simple health probe for liveness checks."""
    return {"status": "ok"}


# Include routers
app.include_router(health.router)
app.include_router(analysis.router)
app.include_router(rag.router)
