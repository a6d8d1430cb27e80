from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .account_service import AccountService
from .clock import Clock, SystemClock
from .date_policy import DatePolicy
from .dependencies import Services
from .extension_service import ExtensionService
from .http_errors import register_exception_handlers
from .logging_setup import setup_logging
from .repositories import AccountRepository, TaskRepository, create_repositories
from .routers import accounts as accounts_router
from .routers import todos as todos_router
from .security import BcryptCredentialVerifier, CredentialVerifier
from .settings import Settings, get_settings
from .todo_service import TodoService

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "accounts", "description": "Account registration and the current account."},
    {
        "name": "todos",
        "description": "Todo lifecycle and time-windowed due date extensions.",
    },
]


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    accounts: Optional[AccountRepository] = None,
    tasks: Optional[TaskRepository] = None,
    verifier: Optional[CredentialVerifier] = None,
) -> FastAPI:
    """
    Build the FastAPI application and wire its services.

    Stores default to the backend named in settings; tests pass their own
    stores, clock and verifier.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_file)

    clock = clock or SystemClock()
    if accounts is None or tasks is None:
        default_accounts, default_tasks = create_repositories(clock)
        accounts = accounts or default_accounts
        tasks = tasks or default_tasks
    verifier = verifier or BcryptCredentialVerifier(settings.bcrypt_rounds)

    app = FastAPI(
        title="Todo Tracker",
        description="Personal todos with ownership-aware access and time-windowed due date extensions.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.services = Services(
        accounts=AccountService(accounts, tasks, verifier),
        todos=TodoService(accounts, tasks, clock),
        extensions=ExtensionService(accounts, tasks, DatePolicy(clock), clock),
        clock=clock,
    )

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(accounts_router.router)
    app.include_router(todos_router.router)

    logger.info("Todo Tracker app created backend=%s", settings.persistence_backend)
    return app


# ASGI entry point: uvicorn todo_tracker.main:app
app = create_app()
