import asyncio
import unittest

from aiohttp.test_utils import TestServer

from igloo_client.channel import ChannelUnavailable, WebSocketChannel
from igloo_client.identity import Identity, IdentitySource
from igloo_client.service import IglooSession
from tests.fakes import FakeScheduler
from tests.igloo_server import create_app


class WebSocketChannelTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.app = create_app(wallet="w-ann")
        self.server = TestServer(self.app)
        await self.server.start_server()
        self.channel = WebSocketChannel(str(self.server.make_url("/ws")))

    async def asyncTearDown(self):
        await self.channel.close()
        await self.server.close()

    async def _next_frame(self, frames: asyncio.Queue):
        return await asyncio.wait_for(frames.get(), timeout=2)

    async def test_send_before_connect_raises(self):
        self.assertFalse(self.channel.available)
        with self.assertRaises(ChannelUnavailable):
            self.channel.send({"type": "igloo_list"})

    async def test_round_trip_delivers_frames_to_listeners(self):
        frames: asyncio.Queue = asyncio.Queue()
        self.channel.add_listener(frames.put_nowait)
        await self.channel.connect()
        self.assertTrue(self.channel.available)

        self.channel.send({"type": "igloo_list"})
        frame = await self._next_frame(frames)

        self.assertIn('"igloo_list"', frame)
        self.assertEqual(self.app["messages"], [{"type": "igloo_list"}])

    async def test_removed_listener_stops_receiving(self):
        seen: list = []
        frames: asyncio.Queue = asyncio.Queue()
        self.channel.add_listener(seen.append)
        self.channel.add_listener(frames.put_nowait)
        self.channel.remove_listener(seen.append)
        self.channel.remove_listener(seen.append)
        await self.channel.connect()

        self.channel.send({"type": "igloo_list"})
        await self._next_frame(frames)

        self.assertEqual(seen, [])

    async def test_failing_listener_does_not_stop_reading(self):
        frames: asyncio.Queue = asyncio.Queue()

        def explode(data):
            raise RuntimeError("continuation failed")

        self.channel.add_listener(explode)
        self.channel.add_listener(frames.put_nowait)
        await self.channel.connect()

        with self.assertLogs("igloo_client.channel", level="ERROR"):
            self.channel.send({"type": "igloo_list"})
            await self._next_frame(frames)
        self.channel.send({"type": "igloo_my_rentals"})
        frame = await self._next_frame(frames)

        self.assertIn('"igloo_my_rentals"', frame)
        self.assertTrue(self.channel.available)

    async def test_close_makes_channel_unavailable(self):
        await self.channel.connect()
        await self.channel.close()

        self.assertFalse(self.channel.available)
        with self.assertRaises(ChannelUnavailable):
            self.channel.send({"type": "igloo_list"})

    async def test_session_over_websocket(self):
        await self.channel.connect()
        identity = IdentitySource(Identity(wallet_address="w-ann", authenticated=True))
        session = IglooSession(self.channel, identity=identity, scheduler=FakeScheduler())
        granted: asyncio.Future = asyncio.get_running_loop().create_future()
        try:
            session.attach()
            session.request_entry("igloo2", granted.set_result)

            self.assertEqual(await asyncio.wait_for(granted, timeout=2), "igloo2")
            self.assertEqual(session.get_space("igloo2").owner_username, "Ann")
            self.assertTrue(session.is_owner("igloo2"))
            self.assertTrue(session.clearance.get("igloo2").can_enter)
        finally:
            session.close()


if __name__ == "__main__":
    unittest.main()
