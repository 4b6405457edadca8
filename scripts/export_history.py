"""
Export one history level to CSV.

Usage:
    python scripts/export_history.py assets                          # print to stdout
    python scripts/export_history.py barca --out barca.csv
    python scripts/export_history.py totals --from 2025-01-01T00:00:00Z --to 2025-02-01T00:00:00Z
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
from walletalloc.pipeline.export import export_history_csv
from walletalloc.repository import SqliteRepo

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Export allocation history as CSV")
    parser.add_argument("level", help="assets|groups|barca|totals")
    parser.add_argument("--out", help="output file (stdout when omitted)")
    parser.add_argument("--from", dest="from_ts")
    parser.add_argument("--to", dest="to_ts")
    args = parser.parse_args()

    repo = SqliteRepo(get_settings().db_path)
    try:
        result = export_history_csv(repo, args.level, args.out, args.from_ts, args.to_ts)
    except ValueError as e:
        print('Export failed:', e)
        sys.exit(1)
    if args.out:
        print('Wrote', result, 'rows to', args.out)
    else:
        sys.stdout.write(result)
