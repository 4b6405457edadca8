"""
Append a wallet allocation CSV to the ledger.

Usage:
    python scripts/import_wallet_allocations.py                  # WALLET_ALLOCATIONS_PATH
    python scripts/import_wallet_allocations.py path/to/file.csv
"""
from pathlib import Path
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

import argparse

from walletalloc.config import get_settings
from walletalloc.errors import LedgerImportError
from walletalloc.logging import setup_logging
from walletalloc.pipeline.ledger import import_wallet_allocations
from walletalloc.repository import SqliteRepo

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Import a wallet allocation CSV")
    parser.add_argument("path", nargs="?", help="CSV file (defaults to WALLET_ALLOCATIONS_PATH)")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging("wallet-import")
    repo = SqliteRepo(settings.db_path)
    repo.migrate()
    try:
        count = import_wallet_allocations(repo, args.path or settings.wallet_allocations_path)
    except LedgerImportError as e:
        print('Import failed:', e)
        sys.exit(1)
    print('Imported', count, 'rows')
