import os
import unittest

from walletalloc.models import AllocationRecord, AssetSnapshot, BarcaSnapshot, GroupSnapshot, TotalSnapshot
from walletalloc.repository import SqliteRepo

from tests.helpers import TempDirMixin, entry

T1 = "2025-01-01T00:00:00.000000+00:00"
T2 = "2025-01-02T00:00:00.000000+00:00"
T3 = "2025-01-03T00:00:00.000000+00:00"


class RepositoryTests(TempDirMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.repo = SqliteRepo(os.path.join(self.tmpdir, "data", "test.db"))
        self.repo.migrate()

    def test_migrate_is_repeatable(self):
        self.repo.migrate()
        self.assertEqual(self.repo.stats(), {"wallet_allocations": 0, "last_snapshot": None})

    def test_ledger_is_append_only(self):
        batch = [entry("BTC", 1.0, 50.0), entry("ETH", 2.0, 50.0)]
        self.repo.insert_wallet_allocations(batch, created_at=T1)
        self.repo.insert_wallet_allocations(batch, created_at=T2)
        self.assertEqual(self.repo.stats()["wallet_allocations"], 4)
        history = self.repo.fetch_wallet_allocation_history("BTC")
        self.assertEqual([row.created_at for row in history], [T2, T1])

    def test_current_view_uses_latest_batch_per_symbol(self):
        self.repo.insert_wallet_allocations([entry("BTC", 1.0, 40.0), entry("ETH", 2.0, 30.0)], created_at=T1)
        self.repo.insert_wallet_allocations([entry("BTC", 0.5, 20.0), entry("BTC", 0.25, 10.0)], created_at=T2)
        current = {row.symbol: row for row in self.repo.fetch_current_wallet_allocations()}
        self.assertEqual(set(current), {"BTC", "ETH"})
        self.assertAlmostEqual(current["BTC"].current_quantity, 0.75)
        self.assertAlmostEqual(current["BTC"].target_percent, 30.0)
        self.assertEqual(current["BTC"].created_at, T2)
        self.assertAlmostEqual(current["ETH"].current_quantity, 2.0)

    def test_wallets_inserted_one_by_one_add_up(self):
        ledger = entry("BTC", 1.0, 40.0, group="Base", barca="Base", last_price=10.0, notes="Ledger")
        binance = ledger.model_copy(update={"current_quantity": 0.5, "target_percent": 0.0, "notes": "Binance"})
        self.repo.insert_wallet_allocation(ledger)
        self.repo.insert_wallet_allocation(binance)
        rows = self.repo.fetch_current_wallet_allocations()
        self.assertEqual(len(rows), 1)
        self.assertAlmostEqual(rows[0].current_quantity, 1.5)
        self.assertEqual(rows[0].target_percent, 40.0)
        self.assertEqual(sorted(rows[0].notes.split("; ")), ["Binance", "Ledger"])

    def test_wallet_update_replaces_only_that_wallet(self):
        self.repo.insert_wallet_allocations(
            [entry("BTC", 1.0, 40.0, notes="Ledger"), entry("BTC", 0.5, 0.0, notes="Binance")], created_at=T1
        )
        self.repo.insert_wallet_allocation(entry("BTC", 2.0, 40.0, notes="Ledger", created_at=T2))
        current = self.repo.fetch_current_wallet_allocations()
        self.assertEqual(len(current), 1)
        self.assertAlmostEqual(current[0].current_quantity, 2.5)
        self.assertAlmostEqual(current[0].target_percent, 40.0)

    def test_single_insert_returns_id(self):
        row_id = self.repo.insert_wallet_allocation(entry("ADA", 100.0, 5.0, notes="cold wallet"))
        self.assertIsInstance(row_id, int)
        rows = self.repo.fetch_wallet_allocation_history("ADA")
        self.assertEqual(rows[0].id, row_id)
        self.assertEqual(rows[0].notes, "cold wallet")

    def test_snapshot_rows_are_written_once(self):
        snap = AssetSnapshot(timestamp=T1, symbol="BTC", group_name="Core", barca="Base", value=10.0)
        self.assertTrue(self.repo.insert_asset_snapshot(snap))
        self.assertFalse(self.repo.insert_asset_snapshot(snap.model_copy(update={"value": 99.0})))
        self.assertTrue(self.repo.insert_group_snapshot(GroupSnapshot(timestamp=T1, group_name="Core", value=10.0)))
        self.assertFalse(self.repo.insert_group_snapshot(GroupSnapshot(timestamp=T1, group_name="Core", value=1.0)))
        self.assertTrue(self.repo.insert_barca_snapshot(BarcaSnapshot(timestamp=T1, barca="Base", value=10.0)))
        self.assertFalse(self.repo.insert_barca_snapshot(BarcaSnapshot(timestamp=T1, barca="Base", value=1.0)))
        rows = self.repo.fetch_assets()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].value, 10.0)

    def test_totals_are_replaced(self):
        self.repo.insert_total_snapshot(TotalSnapshot(timestamp=T1, total_value=100.0))
        self.repo.insert_total_snapshot(TotalSnapshot(timestamp=T1, total_value=250.0, extra={"market": "BullMarket"}))
        rows = self.repo.fetch_totals()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].total_value, 250.0)
        self.assertEqual(rows[0].extra, {"market": "BullMarket"})
        self.assertEqual(self.repo.stats()["last_snapshot"], T1)

    def test_history_range_is_inclusive_and_ordered(self):
        for ts in (T3, T1, T2):
            for barca in ("Growth", "Base"):
                self.repo.insert_barca_snapshot(BarcaSnapshot(timestamp=ts, barca=barca, value=1.0))
        rows = self.repo.fetch_barca(from_ts=T2, to_ts=T3)
        self.assertEqual(
            [(r.timestamp, r.barca) for r in rows],
            [(T2, "Base"), (T2, "Growth"), (T3, "Base"), (T3, "Growth")],
        )
        self.assertEqual(len(self.repo.fetch_barca(to_ts=T1)), 2)
        self.assertEqual(len(self.repo.fetch_barca()), 6)

    def test_range_bounds_accept_any_rfc3339_form(self):
        self.repo.insert_total_snapshot(TotalSnapshot(timestamp="2025-01-01T00:00:00.250000+00:00", total_value=1.0))
        self.repo.insert_total_snapshot(TotalSnapshot(timestamp="2025-01-01T02:00:00+02:00", total_value=2.0))
        same_instant = self.repo.fetch_totals("2025-01-01T00:00:00.25Z", "2025-01-01T00:00:00.25Z")
        self.assertEqual([r.total_value for r in same_instant], [1.0])
        whole_second = self.repo.fetch_totals(from_ts="2025-01-01T00:00:00Z")
        self.assertEqual([r.total_value for r in whole_second], [2.0, 1.0])
        self.assertEqual(whole_second[0].timestamp, "2025-01-01T00:00:00.000000+00:00")

    def test_asset_view_derives_deviation(self):
        self.repo.insert_asset_snapshot(
            AssetSnapshot(
                timestamp=T1, symbol="BTC", group_name="Core", barca="Base",
                value=600.0, target_percent=50.0, current_percent=60.0,
            )
        )
        self.repo.insert_total_snapshot(TotalSnapshot(timestamp=T1, total_value=1000.0))
        row = self.repo.fetch_assets()[0]
        self.assertAlmostEqual(row.deviation_percent, 10.0)
        self.assertAlmostEqual(row.value_deviation, 100.0)

    def test_group_view_derives_deviation(self):
        self.repo.insert_group_snapshot(
            GroupSnapshot(timestamp=T1, group_name="Core", value=10.0, current_percent=20.0, target_percent=35.0)
        )
        self.assertAlmostEqual(self.repo.fetch_groups()[0].deviation_percent, -15.0)

    def test_allocation_record(self):
        rec_id = self.repo.persist_allocation_record(AllocationRecord(computed_at=T1, payload={"total_value": 1.0}))
        self.assertIsInstance(rec_id, int)


if __name__ == "__main__":
    unittest.main()
