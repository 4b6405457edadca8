from pathlib import Path
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

import json

from walletalloc.config import get_settings
from walletalloc.errors import ConfigError, UpstreamError
from walletalloc.logging import setup_logging
from walletalloc.pipeline.orchestrator import AllocationService
from walletalloc.providers.coinmarketcap import CoinMarketCapProvider
from walletalloc.repository import SqliteRepo

if __name__ == '__main__':
    settings = get_settings()
    setup_logging(market=settings.current_market)
    repo = SqliteRepo(settings.db_path)
    repo.migrate()
    service = AllocationService(settings, CoinMarketCapProvider.from_settings(settings), repo)
    try:
        report = service.compute_and_record()
    except (ConfigError, UpstreamError) as e:
        print('Compute failed:', e)
        sys.exit(1)
    print(json.dumps(report.model_dump(mode="json"), indent=2))
