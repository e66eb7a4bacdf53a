"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_middlewares
from rest_api.routers.admin import router as admin_router
from rest_api.routers.auth import router as auth_router
from rest_api.routers.pos import router as pos_router, ws_router
from rest_api.routers.public import health_router
from shared.config.logging import rest_api_logger as logger
from shared.config.settings import settings
from shared.infrastructure.correlation import get_request_id
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler
from shared.utils.exceptions import PartialFailureError
from shared.utils.schemas import PartialFailureResponse


# Create FastAPI application
app = FastAPI(
    title="Franchise POS REST API",
    description="Restaurant point-of-sale and back-office API",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(PartialFailureError)
async def partial_failure_handler(request: Request, exc: PartialFailureError) -> JSONResponse:
    """Saga stopped part-way: report which steps are applied and the saga id."""
    body = PartialFailureResponse(
        detail=exc.detail,
        saga_id=exc.saga_id,
        failed_step=exc.failed_step,
        completed_steps=exc.completed_steps,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        request_id=get_request_id(),
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Middlewares
register_middlewares(app)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(pos_router)
app.include_router(ws_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
