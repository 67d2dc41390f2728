import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.database.redis_client import close_redis_client, get_redis_client
from shared.middleware import error_envelope_middleware, request_id_middleware

from marketplace.auth.router import router as auth_router
from marketplace.auth.token_store import MemoryResetTokenStore, RedisResetTokenStore
from marketplace.config import get_settings
from marketplace.database import close_db, init_db
from marketplace.payments.router import router as payments_router
from marketplace.progress.router import router as progress_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db(settings.database_url)

    app.state.redis = None
    if settings.redis_url:
        app.state.redis = get_redis_client(settings.redis_url)
        app.state.reset_tokens = RedisResetTokenStore(
            app.state.redis, settings.password_reset_ttl_secs,
        )
    else:
        logger.warning("REDIS_URL not set; password reset tokens are process-local")
        app.state.reset_tokens = MemoryResetTokenStore(settings.password_reset_ttl_secs)

    yield

    # Shutdown
    await close_redis_client(app.state.redis)
    await close_db()


SWAGGER_DESCRIPTION = """\
## Course Marketplace Service

Paid course enrollment through Stripe Checkout, per-lecture progress
tracking and password recovery.

### Domain Tags

| Tag | Description |
|-----|-------------|
| **Payments** | Checkout sessions, Stripe webhook, enrollment queries |
| **Progress** | Save position, mark complete, course progress, continue watching |
| **Auth** | Forgot / reset password |

### Authentication

All endpoints except health, the Stripe webhook and password recovery
require a valid JWT Bearer token in the `Authorization` header.
Token structure: `{"sub": "<user_uuid>", "email": "...", "roles": [...]}`.

### Purchase Flow

```
POST /api/v1/payment/create-checkout-session  ->  Stripe hosted checkout
Stripe  ->  POST /api/v1/payment/webhook (checkout.session.completed)  ->  Enrollment
```
"""


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s:%(name)s: %(message)s",
    )
    app = FastAPI(
        title="CourseMart Marketplace",
        version="0.1.0",
        description=SWAGGER_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)

    app.include_router(payments_router, prefix="/api/v1")
    app.include_router(progress_router, prefix="/api/v1")
    app.include_router(auth_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok", "service": "marketplace"}

    return app


app = create_app()
