from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol, Union

import aiohttp
from aiohttp import WSMsgType

from .envelopes import Envelope

logger = logging.getLogger(__name__)

Listener = Callable[[Union[str, bytes]], None]


class ChannelUnavailable(RuntimeError):
    pass


class Channel(Protocol):
    """Duplex message channel the igloo session talks through."""

    @property
    def available(self) -> bool: ...

    def send(self, envelope: Envelope) -> None: ...

    def add_listener(self, listener: Listener) -> None: ...

    def remove_listener(self, listener: Listener) -> None: ...


class WebSocketChannel:
    """aiohttp websocket client delivering inbound frames one at a time.

    ``send`` never blocks: envelopes go through a bounded queue drained by a
    writer task. A full queue closes the socket.
    """

    def __init__(
        self,
        url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        heartbeat_s: Optional[float] = None,
        max_queue: int = 1000,
    ) -> None:
        self.url = url
        self._session = session
        self._owns_session = session is None
        self._heartbeat_s = heartbeat_s
        self._outbound: asyncio.Queue[Optional[Envelope]] = asyncio.Queue(maxsize=max_queue)
        self._listeners: List[Listener] = []
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._writer_task: Optional[asyncio.Task] = None

    @property
    def available(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return

    async def connect(self) -> None:
        if self.available:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._ws = await self._session.ws_connect(self.url, heartbeat=self._heartbeat_s)
        self._reader_task = asyncio.create_task(self._reader())
        self._writer_task = asyncio.create_task(self._writer())
        logger.info("connected to %s", self.url)

    def send(self, envelope: Envelope) -> None:
        if not self.available:
            raise ChannelUnavailable("websocket is not connected")
        try:
            self._outbound.put_nowait(envelope)
        except asyncio.QueueFull:
            asyncio.create_task(self.close())
            raise ChannelUnavailable("outbound queue full") from None

    async def _writer(self) -> None:
        try:
            while True:
                envelope = await self._outbound.get()
                if envelope is None or self._ws is None:
                    break
                await self._ws.send_json(envelope)
        except asyncio.CancelledError:
            return
        except ConnectionResetError as exc:
            logger.warning("websocket write failed: %s", exc)

    async def _reader(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            async for msg in ws:
                if msg.type in {WSMsgType.TEXT, WSMsgType.BINARY}:
                    self._deliver(msg.data)
                elif msg.type in {WSMsgType.CLOSE, WSMsgType.CLOSED, WSMsgType.ERROR}:
                    break
        except asyncio.CancelledError:
            return
        finally:
            logger.info("websocket to %s closed", self.url)

    def _deliver(self, data: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(data)
            except Exception:
                logger.exception("listener failed on frame from %s", self.url)

    async def close(self) -> None:
        tasks = [task for task in (self._reader_task, self._writer_task) if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._reader_task = None
        self._writer_task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
