import os
import unittest

from walletalloc.errors import ConfigError, LedgerImportError
from walletalloc.pipeline.ledger import import_wallet_allocations, read_barca_targets, read_wallet_allocations
from walletalloc.repository import SqliteRepo

from tests.helpers import TempDirMixin, write_file

WALLET_CSV = """symbol,group,barca,target_percent,current_quantity,last_price,notes
BTC, Core ,Base,40,0.5,,long term
ETH,Core,Growth,30,2,2000,

DOGE,,,,100,,
"""

BARCA_CSV = """market,group,target_percent
BullMarket,Base,50
BullMarket,Growth,30
BullMarket,Stable,20
BearMarket,Base,80
BearMarket,Stable,20
"""


class WalletLedgerTests(TempDirMixin, unittest.TestCase):
    def test_read_rows(self):
        path = write_file(self.tmpdir, "wallet.csv", WALLET_CSV)
        entries = read_wallet_allocations(path)
        self.assertEqual([e.symbol for e in entries], ["BTC", "ETH", "DOGE"])
        btc, eth, doge = entries
        self.assertEqual(btc.group_name, "Core")
        self.assertIsNone(btc.last_price)
        self.assertEqual(btc.notes, "long term")
        self.assertEqual(eth.last_price, 2000.0)
        self.assertIsNone(eth.notes)
        self.assertIsNone(doge.group_name)
        self.assertIsNone(doge.target_percent)

    def test_comments_column_is_read_as_notes(self):
        path = write_file(self.tmpdir, "wallet.csv", "symbol,current_quantity,comments\nBTC,1,ledger nano\n")
        self.assertEqual(read_wallet_allocations(path)[0].notes, "ledger nano")

    def test_bad_row_aborts_import(self):
        repo = SqliteRepo(os.path.join(self.tmpdir, "test.db"))
        repo.migrate()
        path = write_file(
            self.tmpdir, "wallet.csv",
            "symbol,group,barca,target_percent,current_quantity\nBTC,Core,Base,50,1\nETH,Core,Base,abc,2\n",
        )
        with self.assertRaises(LedgerImportError) as ctx:
            import_wallet_allocations(repo, path)
        self.assertEqual(ctx.exception.line, 3)
        self.assertIn("target_percent", str(ctx.exception))
        self.assertEqual(repo.stats()["wallet_allocations"], 0)

    def test_missing_symbol_is_rejected(self):
        path = write_file(self.tmpdir, "wallet.csv", "symbol,current_quantity\n,1\n")
        with self.assertRaises(LedgerImportError):
            read_wallet_allocations(path)

    def test_missing_file(self):
        with self.assertRaises(LedgerImportError):
            read_wallet_allocations(os.path.join(self.tmpdir, "nope.csv"))

    def test_import_twice_appends(self):
        repo = SqliteRepo(os.path.join(self.tmpdir, "test.db"))
        repo.migrate()
        path = write_file(self.tmpdir, "wallet.csv", WALLET_CSV)
        self.assertEqual(import_wallet_allocations(repo, path), 3)
        self.assertEqual(import_wallet_allocations(repo, path), 3)
        self.assertEqual(repo.stats()["wallet_allocations"], 6)


class BarcaTargetTests(TempDirMixin, unittest.TestCase):
    def test_targets_for_active_market(self):
        path = write_file(self.tmpdir, "barca.csv", BARCA_CSV)
        self.assertEqual(read_barca_targets(path, "BullMarket"), {"Base": 50.0, "Growth": 30.0, "Stable": 20.0})
        self.assertEqual(read_barca_targets(path, "BearMarket"), {"Base": 80.0, "Stable": 20.0})

    def test_unknown_market(self):
        path = write_file(self.tmpdir, "barca.csv", BARCA_CSV)
        with self.assertRaises(ConfigError) as ctx:
            read_barca_targets(path, "Sideways")
        self.assertEqual(str(ctx.exception), "No BARCA targets found for market 'Sideways'")

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            read_barca_targets(os.path.join(self.tmpdir, "nope.csv"), "BullMarket")

    def test_missing_columns(self):
        path = write_file(self.tmpdir, "barca.csv", "market,group\nBullMarket,Base\n")
        with self.assertRaises(ConfigError) as ctx:
            read_barca_targets(path, "BullMarket")
        self.assertIn("target_percent", str(ctx.exception))

    def test_bad_target(self):
        path = write_file(self.tmpdir, "barca.csv", "market,group,target_percent\nBullMarket,Base,lots\n")
        with self.assertRaises(ConfigError):
            read_barca_targets(path, "BullMarket")


if __name__ == "__main__":
    unittest.main()
