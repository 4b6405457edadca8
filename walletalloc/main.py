from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog
from .logging import setup_logging
from .config import Settings, get_settings
from .api.routes import router as api_router
from .pipeline.orchestrator import AllocationService
from .providers.coinmarketcap import CoinMarketCapProvider, PriceProvider
from .repository import HistoryRepo, SqliteRepo

log = structlog.get_logger()

def create_app(
    settings: Settings | None = None,
    provider: PriceProvider | None = None,
    repo: HistoryRepo | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(market=settings.current_market)
    provider = provider or CoinMarketCapProvider.from_settings(settings)
    repo = repo or SqliteRepo(settings.db_path)
    repo.migrate()

    app = FastAPI(title="wallet-allocations")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.service = AllocationService(settings, provider, repo)
    app.include_router(api_router)
    log.info("app_created", market=settings.current_market, db_path=settings.db_path)
    return app

def run():
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.app_host, port=settings.app_port)

if __name__ == "__main__":
    run()
