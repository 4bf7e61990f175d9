"""
Merkle Airdrop Distributor - Main Entry Point

Serves the claim, root rotation and withdrawal entrypoints over HTTP.
"""

import signal
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app
from starlette.responses import Response

from airdrop.api.v1 import router as api_v1_router
from airdrop.core.config import settings
from airdrop.core.logging import setup_logging
from airdrop.crypto.merkle import AllocationTree
from airdrop.crypto.store import read_tree
from airdrop.db import close_db, get_session_factory, init_db
from airdrop.db.repository import SqlAirdropStore
from airdrop.metrics import get_airdrop_metrics
from airdrop.services.distributor import AirdropDistributor
from airdrop.services.ledger import InMemoryNFTRegistry, InMemoryToken
from airdrop.services.state import AirdropStore, InMemoryAirdropStore

logger = structlog.get_logger(__name__)


def load_tree_artifact(path: str) -> AllocationTree | None:
    """Load the tree artifact if one has been built."""
    if not Path(path).exists():
        logger.warning("No tree artifact found", path=path)
        return None
    return read_tree(path)


def build_store() -> AirdropStore:
    """Select the claim store backend from settings."""
    if settings.STATE_BACKEND == "database":
        return SqlAirdropStore(get_session_factory())
    return InMemoryAirdropStore()


def build_distributor(tree: AllocationTree | None, store: AirdropStore) -> AirdropDistributor:
    """
    Wire a distributor to locally held token and eligibility ledgers.

    The whole INITIAL_RESERVE is minted to the owner and funded into the
    distributor; every ELIGIBLE_HOLDERS entry receives one eligibility token.
    """
    token = InMemoryToken(
        address=settings.TOKEN_ADDRESS,
        name="Airdrop Token",
        symbol="DROP",
        total_supply=settings.INITIAL_RESERVE,
        owner=settings.OWNER_ADDRESS,
    )
    if settings.INITIAL_RESERVE:
        token.transfer(settings.OWNER_ADDRESS, settings.DISTRIBUTOR_ADDRESS, settings.INITIAL_RESERVE)

    registry = InMemoryNFTRegistry(settings.ELIGIBILITY_ADDRESS)
    for token_id, holder in enumerate(settings.ELIGIBLE_HOLDERS):
        registry.mint(holder, token_id)

    if tree is None:
        logger.warning("Starting without a committed tree, root is zero")

    return AirdropDistributor(
        address=settings.DISTRIBUTOR_ADDRESS,
        token=token,
        eligibility=registry,
        owner=settings.OWNER_ADDRESS,
        root=tree.root if tree is not None else bytes(32),
        store=store,
        reserve_floor=settings.RESERVE_FLOOR,
    )


def create_application(
    distributor: AirdropDistributor | None = None,
    tree: AllocationTree | None = None,
) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        distributor: Pre-built distributor; built from settings when omitted
        tree: Tree artifact served by the proof endpoint; read from
            TREE_PATH when the distributor is built from settings
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        logger.info(
            "Starting Airdrop Distributor",
            version=settings.VERSION,
            environment=settings.ENV,
            state_backend=settings.STATE_BACKEND,
        )

        use_database = distributor is None and settings.STATE_BACKEND == "database"
        if use_database:
            await init_db()

        if distributor is None:
            app.state.tree = load_tree_artifact(settings.TREE_PATH)
            app.state.distributor = build_distributor(app.state.tree, build_store())
        else:
            app.state.tree = tree
            app.state.distributor = distributor

        await app.state.distributor.initialize()

        metrics = get_airdrop_metrics()
        metrics.set_service_info(
            version=settings.VERSION,
            environment=settings.ENV,
            state_backend=settings.STATE_BACKEND,
        )
        metrics.update_reserve(app.state.distributor.reserve())

        yield

        logger.info("Shutting down Airdrop Distributor")
        if use_database:
            await close_db()
        logger.info("Airdrop Distributor shutdown complete")

    app = FastAPI(
        title="Merkle Airdrop Distributor API",
        description="Merkle proof based token airdrop distribution",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV != "production" else None,
        redoc_url="/redoc" if settings.ENV != "production" else None,
        lifespan=lifespan,
    )

    # Include routers
    app.include_router(api_v1_router, prefix="/api/v1")

    # Metrics endpoint
    if settings.METRICS_ENABLED:
        app.mount("/metrics", make_asgi_app())

    # Health endpoints
    @app.get("/health")
    async def health() -> dict:
        """Overall service health check."""
        current = getattr(app.state, "distributor", None)
        return {
            "status": "healthy" if current is not None else "starting",
            "service": "airdrop-distributor",
            "version": settings.VERSION,
            "state_backend": settings.STATE_BACKEND,
            "tree_loaded": getattr(app.state, "tree", None) is not None,
        }

    @app.get("/ready")
    async def ready() -> Response:
        """
        Readiness probe for Kubernetes.

        Requires an initialized distributor, and database connectivity
        when claims are persisted there.
        """
        if getattr(app.state, "distributor", None) is None:
            return Response(status_code=503, content="not ready - distributor not initialized")

        if settings.STATE_BACKEND == "database" and distributor is None:
            try:
                await app.state.distributor.get_claim(settings.OWNER_ADDRESS)
            except Exception as e:
                logger.error("Readiness check failed - database unreachable", error=str(e))
                return Response(status_code=503, content="not ready - database unavailable")

        return Response(status_code=200, content="ready")

    @app.get("/live")
    async def live() -> Response:
        """Liveness probe for Kubernetes."""
        return Response(status_code=200, content="alive")

    return app


def handle_signal(signum: int, frame: object) -> None:
    """Handle shutdown signals."""
    logger.info(f"Received signal {signum}, initiating shutdown")
    sys.exit(0)


def main() -> None:
    """Run the service."""
    setup_logging()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    logger.info(
        "Starting Airdrop Distributor service",
        host=settings.HOST,
        port=settings.PORT,
        tree_path=settings.TREE_PATH,
    )

    uvicorn.run(
        "airdrop.main:create_application",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
