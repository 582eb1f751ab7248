import asyncio

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from smartdc.request import DEFAULT_API_VERSION, RequestBuilder, RequestDescriptor
from smartdc.signing import AgentSigner, LocalKeySigner

DATE = "Thu, 01 Jan 2026 00:00:00 GMT"


def _fixed_date() -> str:
    return DATE


class BrokenAgent:
    async def sign(self, key: object, data: bytes) -> object:
        raise ConnectionError("no agent socket")


def test_builder_sets_date_and_version_headers() -> None:
    builder = RequestBuilder(clock=_fixed_date)

    req = asyncio.run(builder.build("/jill/machines", query={"state": "running"}))

    assert req.path == "/jill/machines"
    assert req.headers == {"date": DATE, "api-version": DEFAULT_API_VERSION}
    assert req.query == {"state": "running"}
    assert "authorization" not in req.headers


def test_builder_adds_token_and_extra_headers() -> None:
    builder = RequestBuilder(token="tok-1", api_version="~8", clock=_fixed_date)

    req = asyncio.run(
        builder.build("/jill/machines/abc/tags/role", headers={"accept": "text/plain"})
    )

    assert req.headers["x-auth-token"] == "tok-1"
    assert req.headers["api-version"] == "~8"
    assert req.headers["accept"] == "text/plain"


def test_builder_signs_the_date_header() -> None:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )
    builder = RequestBuilder(signer=LocalKeySigner("/jill/keys/aa", pem), clock=_fixed_date)

    req = asyncio.run(builder.build("/jill"))

    assert req.headers["authorization"].startswith(
        'Signature keyId="/jill/keys/aa",algorithm="rsa-sha256" '
    )


def test_builder_omits_authorization_when_agent_fails() -> None:
    signer = AgentSigner("/jill/keys/aa", BrokenAgent())
    builder = RequestBuilder(signer=signer, clock=_fixed_date)

    req = asyncio.run(builder.build("/jill/machines"))

    assert "authorization" not in req.headers
    assert req.headers["date"] == DATE


def test_builder_encodes_the_path() -> None:
    builder = RequestBuilder(clock=_fixed_date)
    req = asyncio.run(builder.build("/jill/keys/my key"))
    assert req.path == "/jill/keys/my%20key"


def test_descriptor_cache_key_sorts_query() -> None:
    req = RequestDescriptor(
        path="/jill/machines", headers={}, query={"state": "running", "limit": 10, "tags": None}
    )
    assert req.cache_key == "/jill/machines?limit=10&state=running"
    assert req.query_params == {"state": "running", "limit": "10"}
    assert RequestDescriptor(path="/jill", headers={}).cache_key == "/jill"


def test_descriptor_cache_key_ignores_freshness_flags() -> None:
    synced = RequestDescriptor(path="/jill/keys", headers={}, query={"sync": True})
    assert synced.cache_key == "/jill/keys"
    detailed = RequestDescriptor(
        path="/jill/machines/abc/metadata", headers={}, query={"credentials": True}
    )
    assert detailed.cache_key == "/jill/machines/abc/metadata"


def test_descriptor_with_query_merges() -> None:
    req = RequestDescriptor(path="/jill/machines", headers={}, query={"state": "running"})
    paged = req.with_query(offset=100, sync=True)
    assert paged.query_params == {"state": "running", "offset": "100", "sync": "true"}
    assert req.query == {"state": "running"}
