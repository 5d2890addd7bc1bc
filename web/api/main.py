"""FastAPI registration API - academy and tournament sign-ups with Stripe payments."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

import config
from academy.errors import RegistrationError
from academy.models.base import init_db

from web.api.auth_routes import router as auth_router
from web.api.payment_routes import router as payment_router
from web.api.registration_routes import academy_router, tournament_router
from web.api.utils import envelope

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("academy.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Registration API started")
    yield


app = FastAPI(title="Atomics Registration API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(academy_router)
app.include_router(tournament_router)
app.include_router(payment_router)
app.include_router(auth_router)


@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError):
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(message=exc.message, errors=exc.errors, success=False),
    )


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(message=str(exc.detail), success=False),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        # Drop the leading "body"/"query" segment unless it is all there is
        loc = [str(part) for part in err["loc"]]
        field = ".".join(loc[1:] or loc)
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": field, "message": message})
    return JSONResponse(
        status_code=400,
        content=envelope(message="Validation failed", errors=errors, success=False),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=envelope(message="Internal server error", success=False),
    )


@app.get("/api/health")
async def health():
    return envelope({"status": "OK"}, "Registration API is running")
