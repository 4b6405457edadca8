from pathlib import Path
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from walletalloc.config import get_settings
from walletalloc.repository import SqliteRepo

if __name__ == '__main__':
    settings = get_settings()
    repo = SqliteRepo(settings.db_path)
    repo.migrate()
    stats = repo.stats()
    print('DB ready at', settings.db_path, '| ledger rows:', stats['wallet_allocations'])
