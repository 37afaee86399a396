"""
FastAPI application exposing vote casting, vote status and live results.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from ..config import settings
from ..container import BallotServices, build_services
from ..identity import Capability
from ..shared.errors import ServiceUnavailableError
from ..shared.models import RejectionReason, RequestContext, utc_now
from .models import (
    MAX_ID,
    CandidateOut,
    CastVoteRequest,
    CastVoteResponse,
    ElectionOut,
    ElectionResultsResponse,
    ErrorResponse,
    HealthResponse,
    VoteOut,
    VoteStatusResponse,
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)

REJECTION_STATUS_CODES = {
    RejectionReason.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    RejectionReason.ELECTION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.CANDIDATE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.ELECTION_NOT_STARTED: status.HTTP_403_FORBIDDEN,
    RejectionReason.ELECTION_CLOSED: status.HTTP_403_FORBIDDEN,
    RejectionReason.ALREADY_VOTED: status.HTTP_409_CONFLICT,
}

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix=f"/api/{settings.API_VERSION}")


def get_services(request: Request) -> BallotServices:
    return request.app.state.services


def request_context(request: Request) -> RequestContext:
    """Capture the credentials of a request as explicit core input."""
    return RequestContext(
        authorization=request.headers.get("authorization"),
        cookies=dict(request.cookies),
        client_ip=request.client.host if request.client else None
    )


def require(capability: Capability):
    """
    Build a dependency performing the capability check for an endpoint.

    Anonymous callers pass through so the core can reject them as
    unauthenticated; authenticated callers lacking the capability get 403.
    """
    def dependency(request: Request) -> RequestContext:
        context = request_context(request)
        identity = get_services(request).identity_verifier.resolve(context)
        if identity is not None and not identity.can(capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden: role {identity.role} cannot {capability.value}"
            )
        return context
    return dependency


async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError):
    """Transient storage faults: never reported as a vote rejection."""
    logger.error(f"Service unavailable on {request.method} {request.url.path}: {exc}")
    error = ErrorResponse(
        error="service_unavailable",
        message="Service temporarily unavailable; check vote status before retrying"
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error.model_dump(mode="json")
    )


@router.post(
    "/votes",
    response_model=CastVoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Election not open"},
        404: {"model": ErrorResponse, "description": "Election or candidate not found"},
        409: {"model": ErrorResponse, "description": "Already voted"},
        503: {"model": ErrorResponse, "description": "Storage unavailable; outcome unknown"}
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def cast_vote(
    request: Request,
    vote: CastVoteRequest,
    context: RequestContext = Depends(require(Capability.CAST_VOTE))
):
    """
    Cast a vote for a candidate in an election.

    - **election_id**: Target election
    - **candidate_id**: Candidate belonging to that election

    Returns the committed vote, or a rejection with a stable reason code.
    """
    result = await get_services(request).controller.cast_vote(
        context, vote.election_id, vote.candidate_id
    )

    if not result.committed:
        error = ErrorResponse(
            error=result.reason.value,
            message=result.message,
            details={"election_id": vote.election_id, "candidate_id": vote.candidate_id}
        )
        return JSONResponse(
            status_code=REJECTION_STATUS_CODES[result.reason],
            content=error.model_dump(mode="json")
        )

    return CastVoteResponse.from_result(result)


@router.get(
    "/votes/status",
    response_model=VoteStatusResponse,
    responses={401: {"description": "Not authenticated"}}
)
async def get_vote_status(
    request: Request,
    election_id: int = Query(..., gt=0, le=MAX_ID),
    context: RequestContext = Depends(require(Capability.VIEW_STATUS))
):
    """Check whether the caller has already voted in an election, and how."""
    controller = get_services(request).controller
    has_voted = await controller.get_vote_status(context, election_id)
    if has_voted is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    vote = await controller.get_own_vote(context, election_id) if has_voted else None
    return VoteStatusResponse(
        election_id=election_id,
        has_voted=has_voted,
        vote=VoteOut.from_vote(vote) if vote else None
    )


@router.get("/elections", response_model=list[ElectionOut])
async def list_elections(request: Request, active: bool = False):
    """List elections; ``active=true`` keeps only those accepting votes now."""
    elections = await get_services(request).directory.list_elections(
        active_only=active, now=utc_now()
    )
    return [ElectionOut.from_election(e) for e in elections]


@router.get("/elections/{election_id}/candidates", response_model=list[CandidateOut])
async def list_candidates(request: Request, election_id: int = Path(..., gt=0, le=MAX_ID)):
    """List the candidates of an election in creation order."""
    directory = get_services(request).directory
    if await directory.get_election(election_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Election {election_id} not found"
        )
    candidates = await directory.list_candidates(election_id)
    return [CandidateOut.from_candidate(c) for c in candidates]


@router.get(
    "/elections/{election_id}/results",
    response_model=ElectionResultsResponse,
    responses={404: {"description": "Election not found"}}
)
async def get_results(request: Request, election_id: int = Path(..., gt=0, le=MAX_ID)):
    """
    Get live results for an election.

    Candidates are ranked by votes; ties keep candidate creation order.
    Percentages are rounded half-up to two decimals.
    """
    results = await get_services(request).aggregator.compute_results(election_id)
    if results is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Election {election_id} not found"
        )
    return ElectionResultsResponse.from_results(results)


@router.get("/results", response_model=list[ElectionResultsResponse])
async def get_all_results(request: Request):
    """Get live results for every election."""
    results = await get_services(request).aggregator.compute_all_results()
    return [ElectionResultsResponse.from_results(r) for r in results]


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse, "description": "Service unhealthy"}}
)
async def health_check(request: Request):
    """Check health of the service and its backing stores."""
    services = await get_services(request).check_health()
    all_healthy = all(state == "connected" for state in services.values())

    response = HealthResponse(
        status="healthy" if all_healthy else "unhealthy",
        services=services,
        timestamp=utc_now()
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json")
    )


async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


async def prometheus_middleware(request: Request, call_next):
    """Middleware to track request duration."""
    start_time = time.perf_counter()
    response = await call_next(request)
    request_duration.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).observe(time.perf_counter() - start_time)
    return response


def create_app(services: Optional[BallotServices] = None) -> FastAPI:
    """
    Create the FastAPI app.

    Args:
        services: Pre-built collaborators. When omitted they are built from
            settings during application startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        logger.info(f"Starting {settings.SERVICE_NAME} service...")
        owns_services = app.state.services is None

        try:
            if owns_services:
                app.state.services = await build_services()
            app.state.services.aggregator.start()
            logger.info(f"{settings.SERVICE_NAME} started successfully")
        except Exception as e:
            logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
            raise

        yield

        logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
        if owns_services:
            await app.state.services.close()
        else:
            await app.state.services.aggregator.stop()
        logger.info(f"{settings.SERVICE_NAME} shut down successfully")

    app = FastAPI(
        title="Ballot API",
        description="Cast one vote per election and follow live results",
        version=settings.API_VERSION,
        lifespan=lifespan
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    app.middleware("http")(prometheus_middleware)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(ServiceUnavailableError, service_unavailable_handler)

    app.include_router(router)
    app.add_api_route("/metrics", metrics, methods=["GET"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ballot_services.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
