import asyncio

import pytest

from patroniglue.backend import STATUS_KEYS, TransportError
from patroniglue.cache import CacheWriteError
from patroniglue.dispatcher import dispatch
from patroniglue.models import Outcome


class FakeBackend:
    def __init__(self, states=None, errors=None):
        self.states = dict(states or {})
        self.errors = dict(errors or {})
        self.calls: list[str] = []

    async def _probe(self, key):
        self.calls.append(key)
        if key in self.errors:
            raise self.errors[key]
        return self.states.get(key, False)

    async def is_primary(self):
        return await self._probe("primary")

    async def is_read_write(self):
        return await self._probe("read-write")

    async def is_replica(self):
        return await self._probe("replica")

    async def is_read_only(self):
        return await self._probe("read-only")


@pytest.mark.parametrize("name", STATUS_KEYS)
def test_each_name_calls_its_own_probe_once(name):
    backend = FakeBackend(states={name: True})
    result = asyncio.run(dispatch(backend, name))

    assert backend.calls == [name]
    assert result.outcome == Outcome.AVAILABLE
    assert result.status_code == 200
    assert result.body == {name: True}


def test_false_maps_to_unavailable():
    result = asyncio.run(dispatch(FakeBackend(states={"replica": False}), "replica"))

    assert result.outcome == Outcome.UNAVAILABLE
    assert result.status_code == 503
    assert result.body == {"replica": False}
    assert result.error is None


def test_transport_error_maps_to_error_with_unavailable_status():
    backend = FakeBackend(errors={"primary": TransportError("could not request http://db1:8008/primary")})
    result = asyncio.run(dispatch(backend, "primary"))

    assert result.outcome == Outcome.ERROR
    assert result.status_code == 503
    assert result.body["primary"] is False
    assert result.body["error"] == "could not request http://db1:8008/primary"
    assert result.error == result.body["error"]


def test_cache_write_error_maps_to_error():
    backend = FakeBackend(errors={"read-only": CacheWriteError("cache is closed")})
    result = asyncio.run(dispatch(backend, "read-only"))

    assert result.outcome == Outcome.ERROR
    assert result.status_code == 503


def test_unknown_name_is_rejected():
    with pytest.raises(ValueError):
        asyncio.run(dispatch(FakeBackend(), "master"))
