"""Pytest configuration and fixtures for androidtv_remote tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from androidtv_remote.certificate import Identity, generate_full, load_certificate
from androidtv_remote.device_info import DeviceInfo
from androidtv_remote.errors import RemoteConnectionError
from androidtv_remote.pairing.codec import PairingCodec
from androidtv_remote.remote.codec import RemoteCodec
from androidtv_remote.transport import TlsMessage, TlsMessageType

# Kept before any test patches asyncio.sleep
_real_sleep = asyncio.sleep


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await _real_sleep(0)


async def wait_until(predicate: Callable[[], Any], timeout: float = 5.0) -> None:
    """Poll predicate until true, for work done in worker threads."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met in time")
        await _real_sleep(0.01)


class FakeTlsClient:
    """Scripted stand-in for TlsClient.

    Inbound traffic is queued with feed*() and read back through async
    iteration, outbound frames are collected in writes.
    """

    def __init__(
        self,
        connect_error: Exception | None = None,
        peer_identity: Identity | None = None,
        connect_gate: asyncio.Event | None = None,
    ) -> None:
        self.connect_error = connect_error
        self.connect_gate = connect_gate
        self.peer_identity = peer_identity
        self.identity: Identity | None = None
        self.connect_kwargs: dict[str, Any] = {}
        self.writes: list[bytes] = []
        self.closed = False
        self._connected = False
        self._queue: asyncio.Queue[TlsMessage | None] = asyncio.Queue()

    async def connect(
        self, host: str, port: int, identity: Identity, **kwargs: Any
    ) -> None:
        self.host = host
        self.port = port
        self.connect_kwargs = kwargs
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.identity = identity
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    async def close(self) -> None:
        self.closed = True
        self._connected = False
        self._queue.put_nowait(None)

    async def send(self, data: bytes) -> None:
        if not self._connected:
            raise RemoteConnectionError("ENOTCONN")
        self.writes.append(data)

    def local_certificate(self):
        return load_certificate(self.identity) if self.identity else None

    def peer_certificate(self):
        return load_certificate(self.peer_identity) if self.peer_identity else None

    def feed(self, data: bytes) -> None:
        self._queue.put_nowait(TlsMessage(type=TlsMessageType.DATA, data=data))

    def feed_closed(self) -> None:
        self._queue.put_nowait(TlsMessage(type=TlsMessageType.CLOSED))

    def feed_timeout(self) -> None:
        self._queue.put_nowait(TlsMessage(type=TlsMessageType.TIMEOUT))

    def feed_error(self, code: str) -> None:
        self._queue.put_nowait(TlsMessage(type=TlsMessageType.ERROR, code=code))

    def __aiter__(self):
        return self._iter_messages()

    async def _iter_messages(self):
        while True:
            msg = await self._queue.get()
            if msg is None:
                return
            yield msg
            if msg.type is not TlsMessageType.DATA:
                return


class FakeClientFactory:
    """Patched in place of the TlsClient class; hands out fakes in order."""

    def __init__(self, peer_identity: Identity | None = None) -> None:
        self.peer_identity = peer_identity
        self.connect_errors: list[Exception | None] = []
        # When set, connect() blocks until the event is set
        self.connect_gate: asyncio.Event | None = None
        self.clients: list[FakeTlsClient] = []

    def __call__(self) -> FakeTlsClient:
        error = self.connect_errors.pop(0) if self.connect_errors else None
        client = FakeTlsClient(
            connect_error=error,
            peer_identity=self.peer_identity,
            connect_gate=self.connect_gate,
        )
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeTlsClient:
        return self.clients[-1]


@pytest.fixture(scope="session")
def client_identity() -> Identity:
    """Client identity, generated once for the run."""
    return generate_full("androidtv-remote", "CNT", "ST", "LOC", "O", "OU")


@pytest.fixture(scope="session")
def server_identity() -> Identity:
    """Identity standing in for the TV's certificate."""
    return generate_full("atvremote", "US", "CA", "Mountain View", "Google", "TV")


@pytest.fixture
def device_info() -> DeviceInfo:
    return DeviceInfo(manufacturer="Acme", model="Living Room Box")


@pytest.fixture
def pairing_codec(device_info: DeviceInfo) -> PairingCodec:
    return PairingCodec(device_info)


@pytest.fixture
def remote_codec(device_info: DeviceInfo) -> RemoteCodec:
    return RemoteCodec(device_info, app_version="1.0.0")


@pytest.fixture
def fake_clients(server_identity: Identity) -> FakeClientFactory:
    return FakeClientFactory(peer_identity=server_identity)


def tv_pairing_frame(
    codec: PairingCodec,
    variant: str,
    body: dict[str, Any] | None = None,
    status: str = "STATUS_OK",
) -> bytes:
    """Build a pairing frame as the TV would send it."""
    return codec.create({variant: body or {}, "status": status, "protocol_version": 2})


def tv_remote_frame(
    codec: RemoteCodec, variant: str, body: dict[str, Any] | None = None
) -> bytes:
    """Build a remote-control frame as the TV would send it."""
    return codec.create({variant: body or {}})
