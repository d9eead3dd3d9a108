import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from counterpos.ai.suggestions import SuggestionDebouncer, build_provider
from counterpos.api import auth, cart, products, purchases, reports, transactions, users
from counterpos.core.config import settings
from counterpos.services.errors import PosError
from counterpos.services.storage import SnapshotStorage, create_storage
from counterpos.services.store import PosStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(storage: SnapshotStorage | None = None) -> FastAPI:
    """Build the application. `storage` overrides the one selected by DATABASE_URL."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        backend = storage or await create_storage(settings.DATABASE_URL)
        store = await PosStore.load(backend)
        debouncer = SuggestionDebouncer(
            build_provider(settings, store),
            settings.SUGGESTION_DEBOUNCE_SECONDS,
        )
        store.cart_listener = debouncer.trigger
        app.state.store = store
        app.state.suggestions = debouncer
        logger.info(
            "%s ready: %d products, %d transactions, %d users",
            settings.PROJECT_NAME, len(store.products), len(store.transactions), len(store.users),
        )
        try:
            yield
        finally:
            await debouncer.aclose()
            await backend.close()

    app = FastAPI(
        title="CounterPOS API",
        description="Single-store point of sale: catalog, cart, checkout, returns and reports",
        version=VERSION,
        lifespan=lifespan,
    )

    # CORS - restrict in production via env
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PosError)
    async def pos_error_handler(request: Request, exc: PosError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    # Routers
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(products.router)
    app.include_router(cart.router)
    app.include_router(transactions.router)
    app.include_router(purchases.router)
    app.include_router(reports.router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
