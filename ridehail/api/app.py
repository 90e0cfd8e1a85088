"""
FastAPI application factory.

* Registers routes for rides and admin.
* Maps domain errors to the JSON error envelope.
* Starts / stops the optional pending-ride expiry worker via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ridehail.api.errors import register_exception_handlers
from ridehail.api.middleware import limiter
from ridehail.api.routes import admin, rides
from ridehail.infrastructure.redis_client import close_redis
from ridehail.workers import expiry as _expiry

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the expiry worker on startup (if configured); stop on shutdown."""
    await _expiry.start_expiry_loop()
    yield
    await _expiry.stop_expiry_loop()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Hailing Dispatch API",
        description=(
            "Passengers book rides, nearby drivers find and accept them, "
            "and the trip moves through pending, accepted, in-progress "
            "and completed.  At most one active ride per passenger and per "
            "driver, even under concurrent requests."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
