from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from apollo_gateway.apollo.client import ApolloClient
from apollo_gateway.domain.session import Session
from apollo_gateway.infrastructure.state.session_registry import InMemorySessionRegistry
from apollo_gateway.json_types import JsonValue


class _RecordingStream:
    def __init__(self, *, fail_on_close: bool = False) -> None:
        self.sent: list[JsonValue] = []
        self.closed = False
        self._fail_on_close = fail_on_close

    async def send(self, message: JsonValue) -> None:
        self.sent.append(message)

    def close(self) -> None:
        self.closed = True
        if self._fail_on_close:
            raise RuntimeError("stream already broken")


@pytest.fixture
def client() -> ApolloClient:
    return ApolloClient(api_key="test-key")


def test_create_registers_distinct_ids(client: ApolloClient) -> None:
    registry = InMemorySessionRegistry()

    sessions = [registry.create(_RecordingStream(), client=client) for _ in range(1000)]

    ids = {session.session_id for session in sessions}
    assert len(ids) == 1000
    assert len(registry) == 1000
    assert all(registry.lookup(session.session_id) is session for session in sessions)


def test_concurrent_create_registers_distinct_ids(client: ApolloClient) -> None:
    registry = InMemorySessionRegistry()

    with ThreadPoolExecutor(max_workers=16) as pool:
        sessions = list(pool.map(lambda _: registry.create(_RecordingStream(), client=client), range(1000)))

    assert len({session.session_id for session in sessions}) == 1000
    assert len(registry) == 1000
    assert set(registry.ids()) == {session.session_id for session in sessions}


def test_create_retries_when_generated_id_collides(client: ApolloClient) -> None:
    ids = iter(["dup", "dup", "dup", "fresh"])
    registry = InMemorySessionRegistry(id_factory=lambda: next(ids))

    first = registry.create(_RecordingStream(), client=client)
    second = registry.create(_RecordingStream(), client=client)

    assert first.session_id == "dup"
    assert second.session_id == "fresh"


def test_lookup_unknown_id_returns_none() -> None:
    assert InMemorySessionRegistry().lookup("missing") is None


def test_remove_unknown_id_is_a_no_op(client: ApolloClient) -> None:
    registry = InMemorySessionRegistry()
    session = registry.create(_RecordingStream(), client=client)

    assert registry.remove("missing") is None
    assert registry.remove(session.session_id) is session
    assert registry.remove(session.session_id) is None
    assert len(registry) == 0


def test_remove_with_stale_record_keeps_current_session(client: ApolloClient) -> None:
    registry = InMemorySessionRegistry(id_factory=lambda: "same")
    current = registry.create(_RecordingStream(), client=client)
    stale = Session(session_id="same", stream=_RecordingStream(), client=client)

    assert registry.remove("same", session=stale) is None
    assert registry.lookup("same") is current


def test_close_all_continues_past_failing_stream(client: ApolloClient) -> None:
    registry = InMemorySessionRegistry()
    streams = [_RecordingStream(), _RecordingStream(fail_on_close=True), _RecordingStream()]
    for stream in streams:
        registry.create(stream, client=client)

    failures = registry.close_all()

    assert len(failures) == 1
    assert isinstance(failures[0], RuntimeError)
    assert all(stream.closed for stream in streams)
    assert len(registry) == 0
    assert registry.ids() == ()


def test_session_rejects_empty_identifier(client: ApolloClient) -> None:
    with pytest.raises(ValueError, match="session_id"):
        Session(session_id="", stream=_RecordingStream(), client=client)
