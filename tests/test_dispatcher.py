import json
import unittest

from igloo_client import envelopes
from igloo_client.dispatcher import MessageDispatcher
from igloo_client.models import MalformedEnvelope, Space


class MessageDispatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.dispatcher = MessageDispatcher()
        self.seen: list[dict] = []
        self.dispatcher.register(envelopes.LIST, self.seen.append)

    def test_routes_by_type(self):
        handled = self.dispatcher.dispatch(json.dumps({"type": "igloo_list", "igloos": []}))

        self.assertTrue(handled)
        self.assertEqual(self.seen, [{"type": "igloo_list", "igloos": []}])

    def test_accepts_bytes_and_mappings(self):
        self.assertTrue(self.dispatcher.dispatch(b'{"type": "igloo_list"}'))
        self.assertTrue(self.dispatcher.dispatch({"type": "igloo_list"}))
        self.assertEqual(len(self.seen), 2)

    def test_ignores_unhandled_and_foreign_types(self):
        self.assertFalse(self.dispatcher.dispatch({"type": "chat_message", "text": "hi"}))
        self.assertFalse(self.dispatcher.dispatch({"type": "igloo_leave_result"}))
        self.assertEqual(self.seen, [])

    def test_drops_malformed_messages(self):
        for raw in ["not json", "[1, 2]", '{"no": "type"}', '{"type": 5}', b"\xff\xfe"]:
            self.assertFalse(self.dispatcher.dispatch(raw))
        self.assertEqual(self.seen, [])

    def test_handler_field_errors_are_swallowed(self):
        def strict(envelope):
            raise MalformedEnvelope("bad igloo")

        self.dispatcher.register(envelopes.INFO, strict)

        self.assertFalse(self.dispatcher.dispatch({"type": "igloo_info", "igloo": {}}))

    def test_non_finite_numbers_are_dropped(self):
        spaces: list = []
        self.dispatcher.register(envelopes.INFO, lambda envelope: spaces.append(Space.from_dict(envelope["igloo"])))
        raw = '{"type": "igloo_info", "igloo": {"iglooId": "s1", "stats": {"totalVisits": NaN}}}'

        self.assertFalse(self.dispatcher.dispatch(raw))
        self.assertFalse(self.dispatcher.dispatch(raw.replace("NaN", "Infinity")))
        self.assertEqual(spaces, [])

    def test_handler_value_errors_are_swallowed(self):
        def bad_number(envelope):
            int("not a number")

        self.dispatcher.register(envelopes.INFO, bad_number)

        self.assertFalse(self.dispatcher.dispatch({"type": "igloo_info"}))

    def test_register_rejects_foreign_tags(self):
        with self.assertRaises(ValueError):
            self.dispatcher.register("chat_message", self.seen.append)

    def test_unregister(self):
        self.dispatcher.unregister(envelopes.LIST)

        self.assertFalse(self.dispatcher.handles(envelopes.LIST))
        self.assertFalse(self.dispatcher.dispatch({"type": "igloo_list"}))


class EnvelopeBuilderTests(unittest.TestCase):
    def test_optional_fields_are_omitted(self):
        self.assertEqual(envelopes.submit_rental("igloo1"), {"type": "igloo_rent", "iglooId": "igloo1"})
        self.assertEqual(
            envelopes.submit_rent_payment("igloo1", "sig"),
            {"type": "igloo_pay_rent", "iglooId": "igloo1", "transactionSignature": "sig"},
        )
        self.assertEqual(
            envelopes.submit_settings("igloo1", {"accessType": "public"}),
            {"type": "igloo_update_settings", "iglooId": "igloo1", "settings": {"accessType": "public"}},
        )


if __name__ == "__main__":
    unittest.main()
