"""
FastAPI application for vote intake.

Validates vote submissions and publishes them to the message bus. Nothing is
persisted here; the vote processor validates and stores published votes.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from ..shared.responses import ErrorResponse, HealthResponse, register_error_handlers
from .config import settings
from .models import VoteRequest, VoteResponse
from .publisher import RabbitMQPublisher

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

ERR_INVALID_DATA = "Invalid Vote Data"
ERR_FAIL_PUB_VOTE = "Failed to publish vote"

# Prometheus metrics
vote_counter = Counter(
    "votes_submitted_total",
    "Total number of votes published"
)
vote_errors = Counter(
    "vote_errors_total",
    "Total number of vote submission errors",
    ["error_type"]
)
request_duration = Histogram(
    "vote_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} service...")

    owned_publisher = None
    if app.state.publisher is None:
        try:
            owned_publisher = RabbitMQPublisher(settings)
            await owned_publisher.initialize()
            app.state.publisher = owned_publisher
        except Exception as e:
            logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
            raise

    logger.info(
        f"{settings.SERVICE_NAME} listening on port {settings.PORT}, "
        f"publishing to channel {settings.VOTE_CHANNEL}"
    )

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    if owned_publisher is not None:
        await owned_publisher.close()
        app.state.publisher = None


def get_publisher(request: Request):
    return request.app.state.publisher


def create_app(publisher=None) -> FastAPI:
    """
    Build the vote API.

    Args:
        publisher: Object with async publish(channel, body) -> bool and
            check_health() -> bool; when omitted a RabbitMQ publisher is
            created on startup and closed on shutdown.
    """
    app = FastAPI(
        title="Vote API",
        description="API for submitting votes",
        version=settings.API_VERSION,
        lifespan=lifespan
    )
    app.state.publisher = publisher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    register_error_handlers(app, ERR_INVALID_DATA)

    @app.middleware("http")
    async def prometheus_middleware(request: Request, call_next):
        """Middleware to track request duration."""
        started = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        request_duration.labels(
            method=request.method,
            endpoint=getattr(route, "path", request.url.path),
            status=response.status_code
        ).observe(time.perf_counter() - started)
        if response.status_code == status.HTTP_400_BAD_REQUEST:
            vote_errors.labels(error_type="validation_error").inc()
        return response

    @app.post(
        "/vote",
        response_model=VoteResponse,
        status_code=status.HTTP_201_CREATED,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid vote format"},
            500: {"model": ErrorResponse, "description": "Failed to publish vote"}
        }
    )
    async def submit_vote(vote_request: VoteRequest, publisher=Depends(get_publisher)):
        """
        Submit a vote for a candidate in an election.

        - **electionId**: Positive election identifier
        - **candidate**: Name of the chosen candidate

        The vote is only published here; whether the election is open and the
        candidate is on the ballot is checked when the vote is processed.
        """
        vote = vote_request.to_vote()

        try:
            published = await publisher.publish(settings.VOTE_CHANNEL, vote.to_json().encode())
        except Exception as e:
            logger.error(f"Error publishing vote for election {vote.election_id}: {e}")
            published = False

        if not published:
            vote_errors.labels(error_type="publish_failed").inc()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ERR_FAIL_PUB_VOTE
            )

        vote_counter.inc()
        logger.info(
            f"Vote submitted: election={vote.election_id}, candidate={vote.candidate}"
        )

        return vote.to_dict()

    @app.get(
        "/health",
        response_model=HealthResponse,
        responses={
            503: {"model": HealthResponse, "description": "Service unhealthy"}
        }
    )
    async def health_check(publisher=Depends(get_publisher)):
        """Check health of the service and its message bus connection."""
        services = {}

        try:
            healthy = publisher is not None and await publisher.check_health()
            services["rabbitmq"] = "connected" if healthy else "disconnected"
        except Exception as e:
            logger.error(f"RabbitMQ health check error: {e}")
            services["rabbitmq"] = "error"

        all_healthy = all(state == "connected" for state in services.values())
        response = HealthResponse(
            status="healthy" if all_healthy else "unhealthy",
            services=services,
            timestamp=datetime.now(timezone.utc)
        )

        return JSONResponse(
            status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json")
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.API_VERSION,
            "status": "running",
            "endpoints": {
                "submit_vote": "POST /vote",
                "health": "/health",
                "metrics": "/metrics"
            }
        }

    return app


app = create_app()


def main():
    """Run the vote API with uvicorn."""
    import uvicorn

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
