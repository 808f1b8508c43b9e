import unittest

from igloo_client.clearance import ClearanceCache
from igloo_client.models import AccessType, ClearanceRecord, MalformedEnvelope, RentStatus, Space
from igloo_client.store import SpaceStore


def _space(**fields) -> Space:
    return Space.from_dict(fields)


class SpaceStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = SpaceStore()
        self.store.replace_spaces(
            [
                _space(iglooId="s1", isRented=False),
                _space(iglooId="s2", isRented=True, ownerUsername="Ann", ownerWallet="w-ann"),
            ]
        )

    def test_lookup_by_id(self):
        self.assertFalse(self.store.get("s1").is_rented)
        self.assertEqual(self.store.get("s2").owner_username, "Ann")
        self.assertIsNone(self.store.get("s3"))

    def test_patch_merges_and_keeps_unknown_fields(self):
        self.store.replace_spaces([_space(iglooId="s1", position={"x": 1}, banner={"title": "Hi"})])

        self.assertTrue(self.store.patch_space("s1", {"iglooId": "s1", "accessType": "token", "isRented": True}))

        space = self.store.get("s1")
        self.assertEqual(space.access_type, AccessType.TOKEN)
        self.assertTrue(space.is_rented)
        self.assertEqual(space.extra["position"], {"x": 1})
        self.assertEqual(space.banner, {"title": "Hi"})

    def test_patched_fee_updates_summary_fields(self):
        self.store.patch_space("s1", {"entryFee": {"enabled": True, "amount": 75}})

        space = self.store.get("s1")
        self.assertTrue(space.has_entry_fee)
        self.assertEqual(space.entry_fee_amount, 75)

    def test_patch_unknown_space_is_ignored(self):
        self.assertFalse(self.store.patch_space("nope", {"isRented": True}))
        self.assertEqual([s.space_id for s in self.store.spaces], ["s1", "s2"])

    def test_is_owner_checks_rentals_and_wallet(self):
        self.store.replace_rentals([_space(iglooId="s1")])

        self.assertTrue(self.store.is_owner("s1", None))
        self.assertTrue(self.store.is_owner("s2", "w-ann"))
        self.assertFalse(self.store.is_owner("s2", "w-bob"))
        self.assertFalse(self.store.is_owner("s2", None))

    def test_banner_info_projection(self):
        self.store.replace_spaces(
            [
                _space(
                    iglooId="s4",
                    ownerUsername="Ann",
                    accessType="fee",
                    banner={"title": "Ann's", "styleIndex": 2},
                    entryFee={"enabled": True, "amount": 50, "tokenSymbol": "PEBL"},
                    isReserved=True,
                )
            ]
        )

        info = self.store.banner_info("s4")

        self.assertEqual(info["title"], "Ann's")
        self.assertEqual(info["styleIndex"], 2)
        self.assertEqual(info["accessType"], "fee")
        self.assertTrue(info["hasEntryFee"])
        self.assertEqual(info["entryFeeAmount"], 50)
        self.assertTrue(info["isReserved"])
        self.assertIsNone(self.store.banner_info("missing"))

    def test_snapshot_is_detached(self):
        snapshot = self.store.snapshot()
        self.store.replace_spaces([])

        self.assertEqual(len(snapshot.spaces), 2)
        self.assertFalse(snapshot.is_loading)

    def test_select_id_falls_back_to_placeholder(self):
        space = self.store.select_id("unknown")

        self.assertEqual(space.space_id, "unknown")
        self.assertIs(self.store.selected, space)


class SpaceModelTests(unittest.TestCase):
    def test_rejects_missing_id_and_bad_enums(self):
        with self.assertRaises(MalformedEnvelope):
            Space.from_dict({"isRented": True})
        with self.assertRaises(MalformedEnvelope):
            Space.from_dict({"iglooId": "s1", "accessType": "secret"})
        with self.assertRaises(MalformedEnvelope):
            Space.from_dict(["s1"])

    def test_rejects_non_finite_numbers(self):
        with self.assertRaises(MalformedEnvelope):
            Space.from_dict({"iglooId": "s1", "entryFeeAmount": float("inf")})
        with self.assertRaises(MalformedEnvelope):
            Space.from_dict({"iglooId": "s1", "stats": {"uniqueVisitors": float("nan")}})

    def test_owner_view_fields(self):
        space = Space.from_dict(
            {
                "iglooId": "s1",
                "rentStatus": "grace_period",
                "rentDueDate": "2026-01-01T00:00:00Z",
                "tokenGate": {"enabled": True, "tokenAddress": "mint", "minimumBalance": 10},
                "stats": {"totalVisits": 3, "uniqueVisitors": 2, "totalEntryFees": 40},
            }
        )

        self.assertEqual(space.rent_status, RentStatus.GRACE_PERIOD)
        self.assertTrue(space.has_token_gate)
        self.assertEqual(space.token_gate.token_symbol, "TOKEN")
        self.assertEqual(space.stats.total_visits, 3)
        self.assertEqual(space.stats.extra, {"totalEntryFees": 40})


class ClearanceCacheTests(unittest.TestCase):
    def _record(self, can_enter: bool, checked_at: int = 0) -> ClearanceRecord:
        return ClearanceRecord(
            can_enter=can_enter, token_gate_met=can_enter, entry_fee_paid=True, is_owner=False, checked_at=checked_at
        )

    def test_write_overwrites(self):
        cache = ClearanceCache()
        cache.write("s1", self._record(False, 1))
        cache.write("s1", self._record(True, 2))

        self.assertTrue(cache.get("s1").can_enter)
        self.assertEqual(cache.get("s1").checked_at, 2)

    def test_invalidate_is_idempotent_and_scoped(self):
        cache = ClearanceCache()
        cache.write("s1", self._record(True))
        cache.write("s2", self._record(True))

        self.assertTrue(cache.invalidate("s1"))
        self.assertFalse(cache.invalidate("s1"))
        self.assertFalse(cache.invalidate("never"))
        self.assertNotIn("s1", cache)
        self.assertIn("s2", cache)

    def test_clear_drops_everything(self):
        cache = ClearanceCache()
        cache.write("s1", self._record(True))
        cache.write("s2", self._record(False))

        cache.clear()

        self.assertEqual(len(cache), 0)
        self.assertEqual(cache.snapshot(), {})


if __name__ == "__main__":
    unittest.main()
