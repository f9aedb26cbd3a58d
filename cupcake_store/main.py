import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cupcake_store.core.config import CORS_ORIGINS, DATABASE_URL
from cupcake_store.core.database import Base, engine
from cupcake_store.core.logging_setup import configure_logging
from cupcake_store.core.startup_checks import ensure_migrations_applied, validate_database_environment
from cupcake_store.middleware.observability import ObservabilityMiddleware
import cupcake_store.models  # garante que os models são importados antes do create_all
import cupcake_store.services.event_handlers  # registra handlers do event bus

from cupcake_store.routers.admin_users import router as admin_users_router
from cupcake_store.routers.auth import router as auth_router
from cupcake_store.routers.dashboard import router as dashboard_router
from cupcake_store.routers.internal_metrics import router as internal_metrics_router
from cupcake_store.routers.orders import router as orders_router
from cupcake_store.routers.preassigned_roles import router as preassigned_roles_router
from cupcake_store.routers.products import router as products_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Cupcake Store API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        # SQLite (dev/testes) sobe o schema direto dos models; Postgres usa migrations
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise
    logger.info("%s ready", STARTUP_PREFIX)


# Routers
app.include_router(auth_router)
app.include_router(products_router)
app.include_router(orders_router)
app.include_router(dashboard_router)
app.include_router(admin_users_router)
app.include_router(preassigned_roles_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
