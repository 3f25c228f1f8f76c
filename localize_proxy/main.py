from localize_proxy import settings  # load .env
from fastapi import FastAPI, Request, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from contextlib import asynccontextmanager

from localize_proxy.cache.redis_client import close_redis, get_redis
from localize_proxy.cache.store import MemoryQuotaStore, QuotaStore, RedisQuotaStore
from localize_proxy.errors import ProxyError, QuotaExceeded, ValidationError
from localize_proxy.logger import get_logger
from localize_proxy.nlp.azure_client import AzureTranslator
from localize_proxy.nlp.gemini_client import gemini_generate
from localize_proxy.nlp.refiner import Refiner
from localize_proxy.pipeline.orchestrator import TranslationPipeline
from localize_proxy.pipeline.validation import INVALID_REQUEST
from localize_proxy.privacy import PRIVACY_POLICY_HTML
from localize_proxy.security.rate_limit import RateLimiter


logger = get_logger()

REMAINING_HEADER = "X-RateLimit-Remaining"
IDENTITY_HEADER = "X-User-Id"


def build_quota_store() -> QuotaStore:
    if settings.QUOTA_BACKEND == "memory":
        logger.warning("Using in-memory quota store; counters are per process")
        return MemoryQuotaStore(max_entries=settings.QUOTA_MEMORY_MAX_ENTRIES)
    return RedisQuotaStore(get_redis())


def build_pipeline() -> TranslationPipeline:
    refinement_enabled = bool(settings.GEMINI_API_KEY) and settings.REFINEMENT_ENABLED

    return TranslationPipeline(
        limiter=RateLimiter(
            build_quota_store(),
            limit=settings.DAILY_LIMIT,
            window_seconds=settings.QUOTA_WINDOW_SECONDS,
        ),
        translator=AzureTranslator(
            api_key=settings.AZURE_TRANSLATOR_KEY,
            region=settings.AZURE_TRANSLATOR_REGION,
            endpoint=settings.AZURE_TRANSLATOR_ENDPOINT,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
            source_language=settings.SOURCE_LANGUAGE,
        ),
        refiner=Refiner(
            gemini_generate if refinement_enabled else None,
            timeout=settings.REFINEMENT_TIMEOUT_SECONDS,
        ),
        max_items=settings.MAX_TEXT_LAYERS,
        max_length=settings.MAX_TEXT_LENGTH,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Report configuration gaps early
    settings.log_settings_warnings()

    app.state.pipeline = build_pipeline()
    logger.info("Translation pipeline ready")

    try:
        yield
    finally:
        await close_redis()
        logger.info("Translation proxy stopped")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["Content-Type", IDENTITY_HEADER],
    expose_headers=[REMAINING_HEADER],
)


@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError):
    body = {"error": exc.message}
    headers = {}

    if isinstance(exc, QuotaExceeded):
        body["rateLimited"] = True
        headers[REMAINING_HEADER] = str(exc.remaining)

    if exc.status_code >= 500:
        logger.warning("Request failed (%s): %s", exc.status_code, exc.message)

    return JSONResponse(body, status_code=exc.status_code, headers=headers)


def _get_pipeline(request: Request) -> TranslationPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = build_pipeline()
        request.app.state.pipeline = pipeline
    return pipeline


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/privacy", response_class=HTMLResponse)
async def privacy():
    return HTMLResponse(PRIVACY_POLICY_HTML)


@app.post("/")
@app.post("/translate")
async def translate(
    request: Request,
    x_user_id: str | None = Header(None),
):
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError(INVALID_REQUEST)

    pipeline = _get_pipeline(request)
    response = await pipeline.handle(payload, x_user_id)

    return JSONResponse(
        response.to_payload(),
        headers={REMAINING_HEADER: str(response.remaining)},
    )


# This makes `python -m localize_proxy.main` work
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "localize_proxy.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
    )
