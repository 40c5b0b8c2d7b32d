# dentconnect/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dentconnect.core.config import settings
from dentconnect.core.errors import DomainError
from dentconnect.core.logger import logger
from dentconnect.core.middleware import LogMiddleware
from dentconnect.db.sql import init_db
from dentconnect.modules.users.schemas import ErrorResponse
from dentconnect.routers import auth, bookings, catalog, health


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    The lifespan function is used to manage the FastAPI application lifecycle.
    """
    # Dev convenience: create missing tables. Production schema comes from alembic.
    if settings.APP_ENV == "dev":
        await init_db()
    logger.info("DentConnect API started (env=%s)", settings.APP_ENV)
    yield
    logger.info("DentConnect API stopped")


app = FastAPI(
    title="DentConnect Booking API",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(LogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    body = ErrorResponse(error=exc.code, message=exc.detail, status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and params share the domain error shape."""
    problems = []
    for err in exc.errors():
        # drop the "body" / "query" / "path" prefix
        field = ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0])
        problems.append(f"{field}: {err['msg']}")
    body = ErrorResponse(error="validation_error", message="; ".join(problems), status=422)
    return JSONResponse(status_code=422, content=body.model_dump())


# Routing
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(catalog.router, prefix=settings.API_PREFIX, tags=["catalog"])
app.include_router(bookings.router, prefix=settings.API_PREFIX, tags=["bookings"])


@app.get("/")
def root():
    return {"message": "DentConnect API running"}
