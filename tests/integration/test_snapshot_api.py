import asyncio
import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tokensnap.api.admin import get_engine
from tokensnap.api.deps import get_admission_gate, get_db, get_settings, get_source_factory
from tokensnap.api.main import app
from tokensnap.config import Settings
from tokensnap.db.session import Base
from tokensnap.domain.models.events import ZERO_ADDRESS, LogPage
from tokensnap.engine.admission import AdmissionGate
from tokensnap.engine.decoder import TRANSFER_TOPIC
from tokensnap.exceptions import ExternalServiceError
import tokensnap.db.models  # noqa: F401

CONTRACT = "0xAAAA000000000000000000000000000000000001"
B = "0x000000000000000000000000000000000000000b"
C = "0x000000000000000000000000000000000000000c"


def _topic(address: str) -> str:
    return "0x" + address[2:].rjust(64, "0")


def _nft_log(frm: str, to: str, token_id: int) -> dict:
    return {"topic0": TRANSFER_TOPIC, "topic1": _topic(frm), "topic2": _topic(to), "topic3": "0x" + format(token_id, "064x")}


def _erc20_log(frm: str, to: str, amount: int) -> dict:
    return {"topic0": TRANSFER_TOPIC, "topic1": _topic(frm), "topic2": _topic(to), "data": "0x" + format(amount, "064x")}


class FakeUpstream:
    """Log source whose pages are set per test. Records every credential it was opened with."""

    def __init__(self) -> None:
        self.source = AsyncMock()
        self.source.get_height.return_value = 500
        self.tokens: list[str] = []
        self.set_pages([])

    def set_pages(self, pages: list) -> None:
        self.source.query_logs.side_effect = list(pages)

    @asynccontextmanager
    async def __call__(self, network, token):
        self.tokens.append(token)
        yield self.source


@pytest.fixture()
def upstream():
    return FakeUpstream()


@pytest.fixture()
def gate():
    return AdmissionGate(limit=1, retry_after=42)


@pytest.fixture()
async def client(upstream, gate):
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    test_settings = Settings(_env_file=None, hypersync_bearer_token="shared")

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_admission_gate] = lambda: gate
    app.dependency_overrides[get_source_factory] = lambda: upstream
    app.dependency_overrides[get_engine] = lambda: engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


class TestValidation:
    async def test_missing_contract_400(self, client, upstream):
        res = await client.get("/api/snapshot")
        assert res.status_code == 400
        assert res.json()["detail"] == "Missing contract address"
        assert upstream.tokens == []

    async def test_bad_contract_400(self, client, upstream):
        res = await client.get("/api/snapshot", params={"contract": "0x1234"})
        assert res.status_code == 400
        assert res.json()["detail"] == "Invalid contract address format"
        assert upstream.tokens == []

    async def test_unknown_type_400(self, client, upstream):
        res = await client.get("/api/snapshot", params={"contract": CONTRACT, "type": "erc404"})
        assert res.status_code == 400
        assert res.json()["detail"] == "Unsupported token type: erc404"
        assert upstream.tokens == []

    async def test_missing_type_defaults_to_erc721(self, client, upstream):
        upstream.set_pages([LogPage(logs=[], next_block=None)])
        res = await client.get("/api/snapshot", params={"contract": CONTRACT})
        assert res.status_code == 200
        assert res.json()["tokenType"] == "erc721"

    async def test_merkle_for_erc1155_400(self, client, upstream):
        res = await client.get("/api/snapshot", params={"contract": CONTRACT, "type": "erc1155", "format": "merkle"})
        assert res.status_code == 400
        assert upstream.tokens == []


class TestJsonSnapshot:
    async def test_erc721_json(self, client, upstream):
        upstream.set_pages([LogPage(logs=[_nft_log(ZERO_ADDRESS, B, 5), _nft_log(B, C, 5)], next_block=None)])

        res = await client.get("/api/snapshot", params={"contract": CONTRACT})
        assert res.status_code == 200
        assert "X-Snapshot-Partial" not in res.headers
        data = res.json()
        assert data["contract"] == CONTRACT.lower()
        assert data["tokenType"] == "erc721"
        assert data["network"] == "testnet"
        assert data["snapshotBlock"] == 500
        assert data["fromCache"] is False
        assert data["isPartial"] is False
        assert data["analytics"] == {"totalNfts": 1, "uniqueOwners": 1}
        assert data["data"] == [{"tokenId": "5", "owner": C}]
        assert data["merkleRoot"].startswith("0x")
        assert upstream.tokens == ["shared"]

    async def test_second_request_served_from_cache(self, client, upstream):
        upstream.set_pages([LogPage(logs=[_nft_log(ZERO_ADDRESS, B, 1)], next_block=None)])

        first = await client.get("/api/snapshot", params={"contract": CONTRACT})
        second = await client.get("/api/snapshot", params={"contract": CONTRACT})

        assert first.json()["fromCache"] is False
        assert second.json()["fromCache"] is True
        assert second.json()["merkleRoot"] == first.json()["merkleRoot"]
        assert second.json()["data"] == first.json()["data"]
        assert len(upstream.tokens) == 1

    async def test_erc20_balances_as_strings(self, client, upstream):
        big = 2**128
        upstream.set_pages([LogPage(logs=[_erc20_log(ZERO_ADDRESS, B, big), _erc20_log(B, C, 1)], next_block=None)])

        res = await client.get("/api/snapshot", params={"contract": CONTRACT, "type": "erc20", "network": "mainnet"})
        data = res.json()
        assert data["network"] == "mainnet"
        assert data["data"] == [{"address": B, "balance": str(big - 1)}, {"address": C, "balance": "1"}]
        assert data["analytics"] == {"totalSupply": str(big), "holders": 2}

    async def test_partial_header(self, client, upstream):
        upstream.set_pages([LogPage(logs=[_nft_log(ZERO_ADDRESS, B, i)], next_block=(i + 1) * 10) for i in range(4)])

        res = await client.get("/api/snapshot", params={"contract": CONTRACT, "max_iterations": 2})
        assert res.status_code == 200
        assert res.headers["X-Snapshot-Partial"] == "true"
        assert res.json()["isPartial"] is True
        assert len(res.json()["data"]) == 2


class TestDownloads:
    async def test_erc721_csv(self, client, upstream):
        upstream.set_pages([LogPage(logs=[_nft_log(ZERO_ADDRESS, B, 2), _nft_log(ZERO_ADDRESS, C, 1)], next_block=None)])

        res = await client.get("/api/snapshot", params={"contract": CONTRACT, "format": "csv"})
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/csv")
        assert res.headers["content-disposition"] == f'attachment; filename="{CONTRACT.lower()}-snapshot.csv"'
        assert res.text == f"tokenId,owner\n1,{C}\n2,{B}\n"

    async def test_erc20_merkle(self, client, upstream):
        upstream.set_pages([LogPage(logs=[_erc20_log(ZERO_ADDRESS, B, 10), _erc20_log(ZERO_ADDRESS, C, 20)], next_block=None)])

        res = await client.get("/api/snapshot", params={"contract": CONTRACT, "type": "erc20", "format": "merkle"})
        assert res.status_code == 200
        assert res.headers["content-disposition"].endswith(f'"{CONTRACT.lower()}-erc20-merkle.json"')
        doc = json.loads(res.text)
        assert doc["tokenType"] == "erc20"
        assert doc["snapshotBlock"] == 500
        assert doc["totalLeaves"] == 2
        assert [leaf["address"] for leaf in doc["leaves"]] == [C, B]
        assert all(len(leaf["proof"]) == 1 for leaf in doc["leaves"])


class TestFailures:
    async def test_upstream_error_500(self, client, upstream):
        upstream.set_pages([ExternalServiceError("HyperSync error: 500 - boom")])

        res = await client.get("/api/snapshot", params={"contract": CONTRACT})
        assert res.status_code == 500
        assert res.json()["detail"].startswith("Failed to fetch snapshot:")
        assert "boom" in res.json()["detail"]

    async def test_busy_shared_key_503(self, client, gate):
        entered = asyncio.Event()
        release = asyncio.Event()

        async def hold():
            async with gate.admit():
                entered.set()
                await release.wait()

        holder = asyncio.create_task(hold())
        await entered.wait()
        try:
            res = await client.get("/api/snapshot", params={"contract": CONTRACT, "type": "erc20"})
        finally:
            release.set()
            await holder

        assert res.status_code == 503
        assert res.headers["retry-after"] == "42"
        assert res.json()["detail"]["retry_after"] == 42

    async def test_own_api_key_bypasses_busy_gate(self, client, upstream, gate):
        upstream.set_pages([LogPage(logs=[], next_block=None)])
        async with gate.admit():
            res = await client.get("/api/snapshot", params={"contract": CONTRACT, "type": "erc20", "api_key": "mine"})
        assert res.status_code == 200
        assert upstream.tokens == ["mine"]


class TestDeleteAndInit:
    async def test_delete_cached(self, client, upstream):
        upstream.set_pages([
            LogPage(logs=[_nft_log(ZERO_ADDRESS, B, 1)], next_block=None),
            LogPage(logs=[_nft_log(ZERO_ADDRESS, B, 1)], next_block=None),
        ])
        await client.get("/api/snapshot", params={"contract": CONTRACT})

        res = await client.delete("/api/snapshot", params={"contract": CONTRACT})
        assert res.status_code == 200

        again = await client.get("/api/snapshot", params={"contract": CONTRACT})
        assert again.json()["fromCache"] is False
        assert len(upstream.tokens) == 2

    async def test_delete_missing_404(self, client):
        res = await client.delete("/api/snapshot", params={"contract": CONTRACT})
        assert res.status_code == 404

    async def test_init_idempotent(self, client):
        for _ in range(2):
            res = await client.post("/api/init")
            assert res.status_code == 200
            assert res.json()["success"] is True

    async def test_health(self, client):
        res = await client.get("/api/health")
        assert res.json()["status"] == "ok"
