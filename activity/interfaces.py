"""Contracts of the collaborators the sync engine talks to."""

from typing import Protocol

from activity.entities import Account, AccountSummary, AddressRecord, OperationsPage, Wallet


class Indexer(Protocol):
    """Indexer client owned by the host application."""

    async def account_info(self, address: str, known_token_ids: list[str]) -> AccountSummary:
        ...

    async def get_operations(
        self,
        address: str,
        known_token_ids: list[str],
        wallet: Wallet
    ) -> OperationsPage:
        ...


class TokenMetadataService(Protocol):
    """Token registry owned by the host application."""

    def search_metadata(self, contract: str, token_id: str) -> None:
        """Fire-and-forget metadata backfill."""
        ...

    def known_token_ids(self) -> list[str]:
        ...

    def format_amount(self, token_id: str | None, raw_amount: str) -> str:
        ...


class DomainResolutionService(Protocol):

    async def get_domain_from_address(self, address: str) -> str:
        """Return the reverse-record domain, or an empty string when there is none."""
        ...


class LookupService(Protocol):
    """Address book owned by the host application."""

    def check(self, address: str) -> None:
        """Fire-and-forget registration of an address for tracking."""
        ...

    def resolve(self, record: AddressRecord) -> str:
        ...


class NotificationService(Protocol):

    def add_success(self, message: str) -> None:
        ...


class WalletRepository(Protocol):

    @property
    def wallet(self) -> Wallet:
        ...

    def get_account(self, address: str) -> Account:
        """Raise ``AccountNotFoundException`` for addresses outside the wallet."""
        ...

    def get_accounts(self) -> list[Account]:
        ...

    async def store_account(self, account: Account) -> None:
        ...


class AliasSnapshotStore(Protocol):

    async def load(self) -> list[tuple[str, str]]:
        ...

    async def save(self, entries: list[tuple[str, str]]) -> None:
        ...
