import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from safeguard.core.config import settings
from safeguard.core.logging import configure_logging
from safeguard.core.exceptions import register_exception_handlers
from safeguard.core.database import init_db
from safeguard.middleware import CorrelationIdMiddleware

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

# Middleware: correlation id
app.add_middleware(CorrelationIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Route imports
from safeguard.api.health import router as health_router
from safeguard.api.v1 import auth as auth_router
from safeguard.api.v1 import workers as v1_workers
from safeguard.api.v1 import catalog as v1_catalog
from safeguard.api.v1 import clients as v1_clients
from safeguard.api.v1 import evidence as v1_evidence
from safeguard.api.v1 import analysis as v1_analysis

# Register routers
app.include_router(health_router, prefix="/api", tags=["health"])

# v1 API routes
app.include_router(auth_router.router, prefix="/api/v1", tags=["auth"])
app.include_router(v1_workers.router, prefix="/api/v1", tags=["workers"])
app.include_router(v1_catalog.router, prefix="/api/v1", tags=["catalog"])
app.include_router(v1_clients.router, prefix="/api/v1", tags=["clients"])
app.include_router(v1_evidence.router, prefix="/api/v1", tags=["evidence"])
app.include_router(v1_analysis.router, prefix="/api/v1", tags=["analysis"])


# Exception handlers
register_exception_handlers(app)


@app.on_event("startup")
async def on_startup():
    logger.info("Starting app", extra={"app": settings.APP_NAME})

    if settings.MIGRATE_ON_START:
        logger.info("MIGRATE_ON_START enabled: creating tables")
        await init_db()


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Shutting down")
