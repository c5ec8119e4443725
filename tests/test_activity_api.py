import json
from datetime import datetime, timezone

import pytest
from httpx import AsyncClient

from activity.alias_cache import AliasCache
from activity.entities import Account, AccountSummary, OperationsPage
from conftest import ACCOUNT, OTHER, make_activity


class TestActivityAPI:
    """
    Unit tests for activity API endpoints.

    The indexer, token registry and address book are mocks and Redis is
    patched out, so these tests cover routing, validation and wiring only.
    """

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Account Activity Sync"
        assert data["version"] == "0.1.0"
        assert data["endpoints"]["sync"] == "/api/activity/sync"
        assert data["endpoints"]["notifications"] == "/api/activity/notifications"

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "0.1.0"}

    @pytest.mark.asyncio
    async def test_sync_rejects_blank_address(self, client: AsyncClient):
        """
        Test that the request schema rejects an empty address.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        """
        response = await client.post("/api/activity/sync", json={"address": "   "})
        assert response.status_code == 422
        data = response.json()
        assert data["status"] == "error"
        assert data["errors"][0]["field"] == "address"

    @pytest.mark.asyncio
    async def test_sync_rejects_overlong_address(self, client: AsyncClient):
        response = await client.post("/api/activity/sync", json={"address": "tz1" + "x" * 64})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_sync_rejects_missing_body(self, client: AsyncClient):
        response = await client.post("/api/activity/sync", json={})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_sync_up_to_date(self, client: AsyncClient, indexer):
        """
        Test a pass where the indexer counter did not move.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        indexer : AsyncMock
            Indexer mock
        """
        indexer.account_info.return_value = AccountSummary(counter="41")

        response = await client.post("/api/activity/sync", json={"address": ACCOUNT})

        assert response.status_code == 200
        assert response.json() == {
            "address": ACCOUNT,
            "status": "up_to_date",
            "up_to_date": True,
            "error": None,
        }
        indexer.get_operations.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sync_persists_wallet_and_notifies(self, client: AsyncClient, indexer, mock_redis):
        """
        Test a pass with a full fetch: the wallet document is rewritten and
        the incoming transfer shows up in the notification log.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        indexer : AsyncMock
            Indexer mock
        mock_redis : AsyncMock
            Mocked Redis client
        """
        incoming = make_activity("op1", source=OTHER, destination=ACCOUNT, amount="5")
        incoming = incoming.model_copy(update={"timestamp": datetime.now(timezone.utc)})
        indexer.account_info.return_value = AccountSummary(counter="42")
        indexer.get_operations.return_value = OperationsPage(operations=[incoming])

        response = await client.post("/api/activity/sync", json={"address": ACCOUNT})

        assert response.status_code == 200
        assert response.json()["status"] == "updated"
        assert response.json()["up_to_date"] is False

        wallet_writes = [c for c in mock_redis.set.await_args_list if c.args[0] == "wallet"]
        stored = json.loads(wallet_writes[-1].args[1])
        assert stored["accounts"][0]["state"] == "42"
        assert stored["accounts"][0]["activities"][0]["hash"] == "op1"

        response = await client.get("/api/activity/notifications")
        assert response.status_code == 200
        short = Account(address=ACCOUNT).short_address()
        assert response.json()["messages"] == [f"{short}: Received 5 tez"]

    @pytest.mark.asyncio
    async def test_sync_of_unknown_account_reports_failure(self, client: AsyncClient, indexer):
        response = await client.post("/api/activity/sync", json={"address": OTHER})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "failed"
        assert data["up_to_date"] is None
        assert data["error"] == "error.account.not_found"
        indexer.account_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sync_reports_indexer_failure(self, client: AsyncClient, indexer):
        indexer.account_info.side_effect = ConnectionError("indexer down")

        response = await client.post("/api/activity/sync", json={"address": ACCOUNT})

        assert response.status_code == 200
        assert response.json()["status"] == "failed"
        assert response.json()["error"] == "error.indexer.failed"

    @pytest.mark.asyncio
    async def test_alias_endpoint(self, client: AsyncClient, container):
        """
        Test alias lookup for a resolved and a never checked address.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        container : AsyncContainer
            Application container
        """
        alias_cache = await container.get(AliasCache, component="activity")
        alias_cache.resolver.get_domain_from_address.return_value = "alice.tez"
        await alias_cache.prefetch_alias(ACCOUNT)

        response = await client.get(f"/api/activity/alias/{ACCOUNT}")
        assert response.status_code == 200
        assert response.json() == {"address": ACCOUNT, "alias": "alice.tez", "known": True}

        response = await client.get("/api/activity/alias/tz1unknown")
        assert response.json() == {"address": "tz1unknown", "alias": None, "known": False}

    @pytest.mark.asyncio
    async def test_notifications_start_empty(self, client: AsyncClient):
        response = await client.get("/api/activity/notifications")
        assert response.status_code == 200
        assert response.json() == {"messages": []}
