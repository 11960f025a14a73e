import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from starlette.datastructures import Headers

from gamedeals.api.routes import router as prices_router
from gamedeals.core.errors import AggregationFailure, ValidationError
from gamedeals.core.logger import configure_logging

logger = structlog.get_logger(__name__)

configure_logging()


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """Answers accepted preflights with 204 and no body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response

        headers = {
            k: v
            for k, v in response.headers.items()
            if k not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


app = FastAPI(
    title="GameDeals Price API",
    description="Game price comparison across digital storefronts",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    EmptyPreflightCORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(prices_router, prefix="/api/v1")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(AggregationFailure)
async def aggregation_failure_handler(request: Request, exc: AggregationFailure):
    # details already logged by the aggregator
    return JSONResponse(status_code=500, content={"error": exc.public_message})


@app.api_route("/health", methods=["GET", "HEAD"])
def health_check():
    try:
        from gamedeals.db.session import engine

        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "service": "gamedeals-api",
            "database": "connected",
        }
    except Exception as e:
        logger.warning("health.degraded", error=str(e))
        return {
            "status": "degraded",
            "service": "gamedeals-api",
            "database": "disconnected",
        }
