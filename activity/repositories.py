import logging

from pydantic import ValidationError

from activity.entities import Account, Wallet
from core.exceptions import AccountNotFoundException
from core.redis.providers import CacheService


class RedisWalletRepository:
    """
    Wallet kept in memory and written to Redis as one JSON document.

    Parameters
    ----------
    cache_service : CacheService
        Redis document storage
    logger : logging.Logger
        Logger instance
    storage_key : str
        Key of the wallet document
    """

    def __init__(self, cache_service: CacheService, logger: logging.Logger, storage_key: str = "wallet"):
        self.cache = cache_service
        self.logger = logger
        self.storage_key = storage_key
        self._wallet = Wallet()

    async def load(self) -> Wallet:
        """
        Read the wallet document; a missing or unreadable one yields an empty wallet.

        Returns
        -------
        Wallet
            Loaded wallet
        """
        data = await self.cache.get(self.storage_key)
        if data:
            try:
                self._wallet = Wallet.model_validate(data)
            except ValidationError as e:
                self.logger.warning(f"Stored wallet is invalid, starting empty: {e}")
        self.logger.info(f"Wallet loaded with {len(self._wallet.accounts)} accounts")
        return self._wallet

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
        """
        Persist the wallet after an account changed.

        Parameters
        ----------
        account : Account
            Updated account; replaces the wallet entry with the same address
        """
        for i, current in enumerate(self._wallet.accounts):
            if current.address == account.address:
                self._wallet.accounts[i] = account
                break
        else:
            self._wallet.accounts.append(account)

        stored = await self.cache.set(self.storage_key, self._wallet.model_dump(mode="json"))
        if not stored:
            self.logger.warning(f"{account.address}: wallet was not persisted")


class RedisAliasSnapshotStore:
    """
    Alias cache snapshot stored as a JSON list of ``[address, alias]`` pairs.

    Parameters
    ----------
    cache_service : CacheService
        Redis document storage
    storage_key : str
        Key of the snapshot
    """

    def __init__(self, cache_service: CacheService, storage_key: str = "tezos-domains"):
        self.cache = cache_service
        self.storage_key = storage_key

    async def load(self) -> list[tuple[str, str]]:
        data = await self.cache.get(self.storage_key)
        if not isinstance(data, list):
            return []
        return [
            (entry[0], entry[1] or "")
            for entry in data
            if isinstance(entry, list) and len(entry) == 2 and isinstance(entry[0], str)
        ]

    async def save(self, entries: list[tuple[str, str]]) -> None:
        await self.cache.set(self.storage_key, [[address, alias] for address, alias in entries])
