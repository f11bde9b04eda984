import uuid

import pytest

from integrations.namemc_client import NameMCClient, decode_uuid_array
from namemc.errors import DecodeError, InvalidArgument, TransportError


U1 = "069a79f4-44e9-4726-a5be-fca90e38aaf5"
U2 = "61699b2e-d327-4a01-9f1e-0ea8c3f06bc6"


class _FakeHttp:
    def __init__(self, payload=None, error=None):
        self._payload = payload
        self._error = error
        self.urls = []
        self.closed = False

    async def get_json(self, url):
        self.urls.append(url)
        if self._error is not None:
            raise self._error
        return self._payload

    async def close(self):
        self.closed = True


def test_decode_deduplicates():
    out = decode_uuid_array([U1, U2, U1])
    assert out == frozenset({uuid.UUID(U1), uuid.UUID(U2)})
    assert isinstance(out, frozenset)


def test_decode_empty_array():
    assert decode_uuid_array([]) == frozenset()


@pytest.mark.parametrize(
    "payload",
    [
        {"likes": [U1]},
        "069a79f4-44e9-4726-a5be-fca90e38aaf5",
        None,
        [U1, 5],
        [U1, "nope"],
        [[U1]],
    ],
)
def test_decode_rejects_other_shapes(payload):
    with pytest.raises(DecodeError):
        decode_uuid_array(payload)


@pytest.mark.asyncio
async def test_profile_friends_calls_correct_endpoint():
    http = _FakeHttp([U2])
    client = NameMCClient("https://api.namemc.test/", http=http)

    out = await client.profile_friends(U1)

    assert out == frozenset({uuid.UUID(U2)})
    assert http.urls == [f"https://api.namemc.test/profile/{U1}/friends"]


@pytest.mark.asyncio
async def test_server_likes_lowercases_and_quotes_address():
    http = _FakeHttp([U1])
    client = NameMCClient("https://api.namemc.test", http=http)

    out = await client.server_likes("Play.Example.com:25565")

    assert out == frozenset({uuid.UUID(U1)})
    assert http.urls == ["https://api.namemc.test/server/play.example.com%3A25565/votes"]


@pytest.mark.asyncio
async def test_transport_errors_propagate():
    http = _FakeHttp(error=TransportError("HTTP 500", status=500))
    client = NameMCClient(http=http)
    with pytest.raises(TransportError):
        await client.server_likes("example.com")


@pytest.mark.asyncio
async def test_bad_shape_is_decode_error():
    client = NameMCClient(http=_FakeHttp({"error": "rate limited"}))
    with pytest.raises(DecodeError):
        await client.profile_friends(U1)


def test_bad_keys_rejected_before_request():
    http = _FakeHttp([])
    client = NameMCClient(http=http)
    with pytest.raises(InvalidArgument):
        client.profile_friends_url("not-a-uuid")
    with pytest.raises(InvalidArgument):
        client.server_votes_url("")
    assert http.urls == []


@pytest.mark.asyncio
async def test_close_closes_http():
    http = _FakeHttp([])
    client = NameMCClient(http=http)
    await client.close()
    assert http.closed
