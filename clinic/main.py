import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from clinic import config
from clinic.core.locks import KeyedLocks
from clinic.core.security import TokenAuthority
from clinic.database import init_db
from clinic.logging_setup import setup_logging
from clinic.routers import appointments, auth, doctors, patients, prescriptions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    init_db()
    logger.info("Clinic Scheduling API started")
    yield


def create_app(
    token_authority: Optional[TokenAuthority] = None,
    clock: Optional[Callable[[], datetime]] = None,
    bcrypt_rounds: Optional[int] = None,
) -> FastAPI:
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)

    app = FastAPI(title="Clinic Scheduling API", lifespan=lifespan)

    app.state.token_authority = token_authority or TokenAuthority(
        config.SECRET_KEY, ttl=timedelta(days=config.TOKEN_TTL_DAYS)
    )
    app.state.booking_locks = KeyedLocks()
    app.state.clock = clock or datetime.now
    app.state.bcrypt_rounds = bcrypt_rounds or config.BCRYPT_ROUNDS

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.method} {request.url.path}: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # Include routers
    app.include_router(auth.router)
    app.include_router(doctors.router)
    app.include_router(appointments.router)
    app.include_router(patients.router)
    app.include_router(prescriptions.router)

    @app.get("/")
    async def root():
        return {"message": "Welcome to Clinic Scheduling API"}

    return app


app = create_app()
