import json
import logging
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Set test environment variables before imports
os.environ.setdefault('REDIS_HOST', 'localhost')
os.environ.setdefault('REDIS_PORT', '6379')
os.environ.setdefault('REDIS_DB', '0')
os.environ.setdefault('REDIS_PASSWORD', '')

from activity.alias_cache import AliasCache
from activity.entities import Account, Activity, AddressRecord, Wallet
from activity.notifications import MessageLog
from activity.services import ActivityReconciler, CounterpartyResolver, TokenBalanceReconciler
from activity.usecases import SyncOrchestrator
from core.container import build_container
from core.environment.config import Settings
from core.exceptions import AccountNotFoundException
from main import create_app


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
ACCOUNT = "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb"
OTHER = "tz1aSkwEot3L2kmUvcoxzjMomb9mvBNuzFK6"
DELEGATE = "tz1WnfXMPaNTBmH7DBPwqCWs9cPDJdkGBTZ8"


def make_activity(
    hash: str,
    type: str = "transaction",
    status: int = 1,
    age: timedelta | None = timedelta(minutes=5),
    source: str | None = ACCOUNT,
    destination: str | None = OTHER,
    amount: str | None = "1000000",
    token_id: str | None = None,
) -> Activity:
    """Build an operation ``age`` before ``NOW``; ``age=None`` leaves the timestamp unset."""
    return Activity(
        hash=hash,
        type=type,
        status=status,
        timestamp=NOW - age if age is not None else None,
        source=AddressRecord(address=source) if source is not None else None,
        destination=AddressRecord(address=destination) if destination is not None else None,
        amount=amount,
        token_id=token_id,
    )


class InMemoryWalletRepository:
    """Wallet repository double that records every store."""

    def __init__(self, accounts: list[Account]):
        self._wallet = Wallet(accounts=accounts)
        self.stored: list[Account] = []

    @property
    def wallet(self) -> Wallet:
        return self._wallet

    def get_account(self, address: str) -> Account:
        account = self._wallet.get_account(address)
        if account is None:
            raise AccountNotFoundException()
        return account

    def get_accounts(self) -> list[Account]:
        return list(self._wallet.accounts)

    async def store_account(self, account: Account) -> None:
        self.stored.append(account.model_copy(deep=True))


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("activity_sync.tests")


@pytest.fixture
def account() -> Account:
    return Account(address=ACCOUNT, state="41")


@pytest.fixture
def wallet_repository(account: Account) -> InMemoryWalletRepository:
    return InMemoryWalletRepository([account, Account(address=DELEGATE)])


@pytest.fixture
def token_service() -> MagicMock:
    """
    Token service double.

    Returns
    -------
    MagicMock
        Knows ``KT1x:0`` and formats amounts as ``<amount> <token>``
    """
    service = MagicMock()
    service.known_token_ids.return_value = ["KT1x:0"]
    service.format_amount.side_effect = lambda token_id, amount: f"{amount} {token_id or 'tez'}"
    return service


@pytest.fixture
def lookup_service() -> MagicMock:
    service = MagicMock()
    service.resolve.side_effect = lambda record: f"book:{record.address}"
    return service


@pytest.fixture
def notifier(logger: logging.Logger) -> MessageLog:
    return MessageLog(logger=logger)


@pytest.fixture
def domains_service() -> AsyncMock:
    service = AsyncMock()
    service.get_domain_from_address.return_value = ""
    return service


@pytest.fixture
def alias_store() -> AsyncMock:
    store = AsyncMock()
    store.load.return_value = []
    return store


@pytest_asyncio.fixture
async def alias_cache(domains_service, alias_store, logger):
    """
    Alias cache with mocked resolver and snapshot store.

    Yields
    ------
    AliasCache
        Cache whose sweep is not armed
    """
    cache = AliasCache(resolver=domains_service, store=alias_store, logger=logger, sweep_interval=60)
    yield cache
    await cache.stop()


@pytest.fixture
def counterparty_resolver(lookup_service, alias_cache) -> CounterpartyResolver:
    return CounterpartyResolver(lookup_service=lookup_service, alias_cache=alias_cache)


@pytest.fixture
def balance_reconciler(wallet_repository, logger) -> TokenBalanceReconciler:
    return TokenBalanceReconciler(wallet_repository=wallet_repository, logger=logger)


@pytest.fixture
def activity_reconciler(token_service, notifier, logger) -> ActivityReconciler:
    return ActivityReconciler(
        token_service=token_service,
        notifier=notifier,
        logger=logger,
        notification_window=timedelta(hours=1),
        clock=lambda: NOW,
    )


@pytest.fixture
def indexer() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def orchestrator(
    wallet_repository,
    indexer,
    token_service,
    lookup_service,
    alias_cache,
    counterparty_resolver,
    balance_reconciler,
    activity_reconciler,
    logger,
) -> SyncOrchestrator:
    return SyncOrchestrator(
        wallet_repository=wallet_repository,
        indexer=indexer,
        token_service=token_service,
        lookup_service=lookup_service,
        alias_cache=alias_cache,
        counterparty_resolver=counterparty_resolver,
        balance_reconciler=balance_reconciler,
        activity_reconciler=activity_reconciler,
        logger=logger,
    )


@pytest_asyncio.fixture
async def mock_redis():
    """
    Mock Redis client holding a wallet with ``ACCOUNT`` at counter 41.

    Returns
    -------
    AsyncMock
        Redis client double; ``set`` records writes
    """
    wallet = Wallet(accounts=[Account(address=ACCOUNT, state="41")])
    documents = {"wallet": json.dumps(wallet.model_dump(mode="json"))}

    mock = AsyncMock()
    mock.ping = AsyncMock(return_value=True)
    mock.get = AsyncMock(side_effect=lambda key: documents.get(key))
    mock.set = AsyncMock(return_value=True)
    mock.aclose = AsyncMock()
    return mock


@pytest_asyncio.fixture
async def container(mock_redis, indexer, token_service, lookup_service):
    """
    Application container with host collaborators mocked and no network access.

    Yields
    ------
    AsyncContainer
        Container, closed on teardown
    """
    settings = Settings(redis_host="localhost", redis_port=6379, redis_db=0, redis_password="")
    with patch('core.redis.providers.Redis', return_value=mock_redis), \
            patch('activity.domains_service.TezosDomainsService.get_domain_from_address',
                  AsyncMock(return_value="")):
        container = build_container(indexer, token_service, lookup_service, settings=settings)
        yield container
        await container.close()


@pytest_asyncio.fixture
async def client(container):
    """
    Fixture for async test client.

    Parameters
    ----------
    container : AsyncContainer
        Application container

    Yields
    ------
    AsyncClient
        Async HTTP client for testing
    """
    app = create_app(container)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
