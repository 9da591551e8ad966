# Import FastAPI (web framework) and supporting classes
from contextlib import asynccontextmanager
from pathlib import Path
import logging

import httpx
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response

from risklens.config import get_settings
from risklens.errors import RiskLensError
from risklens.kv_store import KeyValueStore, get_kv_store
from risklens.models import CallerIdentity
from risklens.schemas import (
    AnalysisResult,
    AnalyzeRequest,
    ErrorResponse,
    HealthResponse,
    UsageResponse,
)
from risklens.services.analysis_orchestrator import AnalysisRequest, analyze_contract
from risklens.services.auth import resolve_caller
from risklens.services.billing import SubscriptionLedger
from risklens.services.http_client import close_summarization_client, get_summarization_client

# Logging setup
settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} {settings.app_version} started ({settings.environment})")
    yield
    await close_summarization_client()


# Initialize the FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Contract risk analysis: jurisdiction gate, clause extraction, red flags and summaries.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=CORS_ALLOW_METHODS,
    allow_headers=CORS_ALLOW_HEADERS,
)


# --------------------------
# Error handling
# --------------------------

@app.exception_handler(RiskLensError)
async def risklens_error_handler(request: Request, exc: RiskLensError) -> JSONResponse:
    """Render pipeline errors as {"error": message} with the error's status code."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a client error, reported like a missing text."""
    logger.info(f"Rejected malformed request body on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# --------------------------
# Dependencies
# --------------------------

def get_ledger(store: KeyValueStore = Depends(get_kv_store)) -> SubscriptionLedger:
    return SubscriptionLedger(store)


def get_summarizer() -> httpx.AsyncClient:
    return get_summarization_client()


async def get_caller(request: Request, store: KeyValueStore = Depends(get_kv_store)) -> CallerIdentity:
    """Resolve the caller from JWT, API key or client IP."""
    peer_host = request.client.host if request.client else None
    return await resolve_caller(request.headers, peer_host, store)


# --------------------------
# API Endpoints
# --------------------------

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.post(
    "/api/analyze",
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def analyze(
    req: AnalyzeRequest,
    caller: CallerIdentity = Depends(get_caller),
    store: KeyValueStore = Depends(get_kv_store),
    ledger: SubscriptionLedger = Depends(get_ledger),
    summarizer: httpx.AsyncClient = Depends(get_summarizer),
) -> JSONResponse:
    """
    Analyze contract text.

    This endpoint:
    1. Returns the cached analysis for identical text when available
    2. Applies the per-identity rate limit and, for authenticated callers, the monthly quota
    3. Rejects contracts outside the approved jurisdictions
    4. Extracts clauses, red flags and a summary
    5. Caches the result for 24 hours

    Returns:
        AnalysisResult JSON (camelCase fields)

    Raises:
        RiskLensError: 400 empty text, 403 jurisdiction,
            429 rate limit or quota, 500 unexpected failure
    """
    try:
        result: AnalysisResult = await analyze_contract(
            AnalysisRequest(text=req.text, caller=caller),
            store,
            ledger,
            summarizer_client=summarizer,
        )
    except RiskLensError:
        # Re-raise mapped errors as-is
        raise
    except Exception as e:
        logger.error(f"Contract analysis failed for {caller.identity}: {type(e).__name__}: {e}", exc_info=True)
        raise RiskLensError("Internal server error", status_code=500)

    return JSONResponse(content=result.model_dump(by_alias=True))


@app.get("/api/usage", response_model=UsageResponse)
async def usage(
    caller: CallerIdentity = Depends(get_caller),
    ledger: SubscriptionLedger = Depends(get_ledger),
) -> UsageResponse:
    """Report the caller's plan, monthly usage and remaining analyses."""
    if not caller.authenticated:
        return UsageResponse(identity=caller.identity, authenticated=False, allowed=True)

    decision = await ledger.can_user_analyze(caller.identity)
    return UsageResponse(
        identity=caller.identity,
        authenticated=caller.authenticated,
        tier=decision.tier,
        status=decision.status,
        allowed=decision.allowed,
        reason=decision.reason,
        usage=decision.usage,
        limit=decision.limit,
        remaining=decision.remaining,
    )


@app.options("/{path:path}", include_in_schema=False)
async def preflight(path: str) -> Response:
    """Answer bare OPTIONS requests that are not full CORS preflights."""
    return Response(status_code=200, headers=CORS_HEADERS)


@app.get("/", include_in_schema=False)
async def index() -> FileResponse:
    """Serve the single-page UI document."""
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")


if __name__ == "__main__":
    uvicorn.run("risklens.main:app", host=settings.host, port=settings.port)
