"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from travelmate.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

from .routes import availability, reservations, webhooks_stripe


def create_app() -> FastAPI:
    """Create the booking API with all routes mounted.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Travelmate Bookings",
        docs_url=None,
        redoc_url=None,
    )

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        # Get or generate correlation ID
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint."""
        return {"status": "ok"}

    app.include_router(reservations.router)
    app.include_router(availability.router)
    app.include_router(webhooks_stripe.router)

    return app
