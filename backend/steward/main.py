import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from steward.core.config import settings
from steward.routers import funds, pledges, tenants

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Tenants", "description": "Communities and their giving feature flags."},
    {"name": "Funds", "description": "Create, update and archive donation funds."},
    {
        "name": "Pledges",
        "description": "Recurring pledges, their settings, processing runs and history.",
    },
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Recurring giving API for communities. Manage funds and donor pledges, "
        "configure failure handling, and run scheduled charges and retries."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "Idempotency-Replayed"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "Validation error", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(tenants.router, prefix="/api/tenants", tags=["Tenants"])
app.include_router(
    funds.router,
    prefix="/api/tenants/{tenant_id}/donations/funds",
    tags=["Funds"],
)
app.include_router(
    pledges.router,
    prefix="/api/tenants/{tenant_id}/donations/pledges",
    tags=["Pledges"],
)


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }
