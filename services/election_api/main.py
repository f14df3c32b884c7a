"""
FastAPI application for election management and validation.

Owns the election collection: create/replace, fetch, validate, delete.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from ..shared.models import Election, Timestamp, parse_int32
from ..shared.responses import ErrorResponse, HealthResponse, register_error_handlers
from ..shared.store import DataAccessLayer, DocumentNotFoundError
from .config import settings
from .database import Database
from .models import ElectionRequest, ElectionResponse

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

ERR_INVALID_ID = "Invalid Id"
ERR_INVALID_DATA = "Invalid election Data"
ERR_RETRIEVE_QUERY = "Failed to retrieve query"
ERR_NOT_FOUND = "Not found election"
ERR_UPSERT = "Failed to insert/update election"
ERR_ELECTION_OVER = "election is over"
ERR_CANDIDATE_NOT_FOUND = "candidate not found"

# Prometheus metrics
election_operations = Counter(
    "election_operations_total",
    "Total number of election operations",
    ["operation", "status_code"]
)
request_duration = Histogram(
    "election_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} service...")

    owned_store = None
    if app.state.store is None:
        try:
            owned_store = Database(settings)
            await owned_store.initialize()
            app.state.store = owned_store
        except Exception as e:
            logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
            raise

    logger.info(f"{settings.SERVICE_NAME} listening on port {settings.PORT}")

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    if owned_store is not None:
        await owned_store.close()
        app.state.store = None


def get_store(request: Request) -> DataAccessLayer:
    return request.app.state.store


def parse_election_id(election_id: str) -> int:
    try:
        return parse_int32(election_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=ERR_INVALID_ID)


async def load_election(store: DataAccessLayer, election_id: int) -> Election:
    """Fetch an election, mapping store failures to HTTP errors."""
    try:
        document = await store.find_one(settings.ELECTION_COLLECTION, election_id)
        return Election.from_dict(document)
    except DocumentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ERR_NOT_FOUND)
    except Exception as e:
        logger.error(f"Error retrieving election {election_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ERR_RETRIEVE_QUERY
        )


def _record(operation: str, election_id, status_code: int):
    election_operations.labels(operation=operation, status_code=str(status_code)).inc()
    logger.info(f"{operation} election: id={election_id}, status={status_code}")


def create_app(store: DataAccessLayer = None) -> FastAPI:
    """
    Build the election API.

    Args:
        store: Document store to use; when omitted a PostgreSQL store is
            created on startup and closed on shutdown.
    """
    app = FastAPI(
        title="Election API",
        description="API for managing and validating elections",
        version=settings.API_VERSION,
        lifespan=lifespan
    )
    app.state.store = store

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
        return response

    @app.put(
        "/election",
        response_model=ElectionResponse,
        status_code=status.HTTP_201_CREATED,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid election data"},
            500: {"model": ErrorResponse, "description": "Store failure"}
        }
    )
    async def upsert_election(
        election_request: ElectionRequest,
        store: DataAccessLayer = Depends(get_store)
    ):
        """
        Create or replace an election.

        - **id**: Positive election identifier
        - **candidates**: Non-empty list of distinct names
        - **end**: Close of voting as {seconds, nanos}

        The start time is always reset to the time of this call.
        """
        election = election_request.to_election(start=Timestamp.now())

        try:
            await store.upsert(settings.ELECTION_COLLECTION, election.id, election.to_dict())
        except Exception as e:
            _record("upsert", election.id, status.HTTP_500_INTERNAL_SERVER_ERROR)
            logger.error(f"Error upserting election {election.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ERR_UPSERT
            )

        _record("upsert", election.id, status.HTTP_201_CREATED)
        return election.to_dict()

    @app.get(
        "/election/{election_id}",
        response_model=ElectionResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid id"},
            404: {"model": ErrorResponse, "description": "Election not found"},
            500: {"model": ErrorResponse, "description": "Store failure"}
        }
    )
    async def get_election(election_id: str, store: DataAccessLayer = Depends(get_store)):
        """Fetch an election by id."""
        eid = parse_election_id(election_id)
        try:
            election = await load_election(store, eid)
        except HTTPException as e:
            _record("get", eid, e.status_code)
            raise

        _record("get", eid, status.HTTP_200_OK)
        return election.to_dict()

    @app.get(
        "/election/{election_id}/validate",
        response_model=ElectionResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid id or candidate not on the ballot"},
            404: {"model": ErrorResponse, "description": "Election not found"},
            410: {"model": ErrorResponse, "description": "Election is over"},
            500: {"model": ErrorResponse, "description": "Store failure"}
        }
    )
    async def validate_election(
        election_id: str,
        candidate: str = "",
        store: DataAccessLayer = Depends(get_store)
    ):
        """
        Check that an election is open and, optionally, that a candidate is on its ballot.

        - **election_id**: Election identifier
        - **candidate**: Optional candidate name to check

        Returns the election when it accepts the vote.
        """
        eid = parse_election_id(election_id)
        try:
            election = await load_election(store, eid)

            if election.is_over():
                raise HTTPException(status_code=status.HTTP_410_GONE, detail=ERR_ELECTION_OVER)

            if candidate and not election.has_candidate(candidate):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=ERR_CANDIDATE_NOT_FOUND
                )
        except HTTPException as e:
            _record("validate", eid, e.status_code)
            raise

        _record("validate", eid, status.HTTP_200_OK)
        return election.to_dict()

    @app.delete(
        "/election/{election_id}",
        status_code=status.HTTP_200_OK,
        response_class=Response,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid id"},
            500: {"model": ErrorResponse, "description": "Store failure"}
        }
    )
    async def delete_election(election_id: str, store: DataAccessLayer = Depends(get_store)):
        """Delete an election by id. Deleting an unknown id succeeds."""
        eid = parse_election_id(election_id)
        try:
            await store.remove(settings.ELECTION_COLLECTION, eid)
        except Exception as e:
            _record("delete", eid, status.HTTP_500_INTERNAL_SERVER_ERROR)
            logger.error(f"Error deleting election {eid}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ERR_RETRIEVE_QUERY
            )

        _record("delete", eid, status.HTTP_200_OK)
        return Response(status_code=status.HTTP_200_OK)

    @app.get(
        "/health",
        response_model=HealthResponse,
        responses={
            503: {"model": HealthResponse, "description": "Service unhealthy"}
        }
    )
    async def health_check(store: DataAccessLayer = Depends(get_store)):
        """Check health of the service and its document store."""
        services = {}

        try:
            healthy = store is not None and await store.check_health()
            services["postgresql"] = "connected" if healthy else "disconnected"
        except Exception as e:
            logger.error(f"PostgreSQL health check error: {e}")
            services["postgresql"] = "error"

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
                "upsert_election": "PUT /election",
                "get_election": "GET /election/{id}",
                "validate_election": "GET /election/{id}/validate?candidate={name}",
                "delete_election": "DELETE /election/{id}",
                "health": "/health",
                "metrics": "/metrics"
            }
        }

    return app


app = create_app()


def main():
    """Run the election API with uvicorn."""
    import uvicorn

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
