import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from activity.alias_cache import AliasCache
from activity.entities import (
    Account,
    AccountSummary,
    Activity,
    ActivityType,
    OperationsPage,
    SyncResult,
    SyncStatus,
    split_token_id,
)
from activity.interfaces import Indexer, LookupService, TokenMetadataService, WalletRepository
from activity.services import ActivityReconciler, CounterpartyResolver, TokenBalanceReconciler
from core.exceptions import (
    BaseCustomException,
    IndexerException,
    InvalidTokenIdException,
    MalformedResponseException,
)

_activity_list = TypeAdapter(list[Activity])


class SyncOrchestrator:
    """
    Drives synchronization passes of wallet accounts against the indexer.

    A pass asks the indexer for the account counter first and only pulls the
    full operation list when the counter moved. Failures never reach the
    caller: they are logged and reported through ``SyncResult``. At most one
    pass per account address runs at a time.

    Parameters
    ----------
    wallet_repository : WalletRepository
        Wallet accounts and their persistence
    indexer : Indexer
        Indexer client
    token_service : TokenMetadataService
        Known tokens and metadata backfill
    lookup_service : LookupService
        Address tracking
    alias_cache : AliasCache
        Domain aliases of counterparties
    counterparty_resolver : CounterpartyResolver
        Counterparty derivation
    balance_reconciler : TokenBalanceReconciler
        Token balance updates
    activity_reconciler : ActivityReconciler
        New operation notifications
    logger : logging.Logger
        Logger instance
    """

    def __init__(
        self,
        wallet_repository: WalletRepository,
        indexer: Indexer,
        token_service: TokenMetadataService,
        lookup_service: LookupService,
        alias_cache: AliasCache,
        counterparty_resolver: CounterpartyResolver,
        balance_reconciler: TokenBalanceReconciler,
        activity_reconciler: ActivityReconciler,
        logger: logging.Logger
    ):
        self.wallet_repository = wallet_repository
        self.indexer = indexer
        self.token_service = token_service
        self.lookup_service = lookup_service
        self.alias_cache = alias_cache
        self.counterparty_resolver = counterparty_resolver
        self.balance_reconciler = balance_reconciler
        self.activity_reconciler = activity_reconciler
        self.logger = logger
        self._in_flight: set[str] = set()

    def is_syncing(self, address: str) -> bool:
        return address in self._in_flight

    async def sync(self, address: str) -> SyncResult:
        """
        Synchronize the wallet account with the given address.

        Parameters
        ----------
        address : str
            Account address

        Returns
        -------
        SyncResult
            Outcome of the pass, ``failed`` when the account is unknown
        """
        try:
            account = self.wallet_repository.get_account(address)
        except Exception as e:
            return self._failed(address, e)
        return await self.sync_account(account)

    async def sync_account(self, account: Account) -> SyncResult:
        """
        Run one synchronization pass for an account.

        Parameters
        ----------
        account : Account
            Account to synchronize

        Returns
        -------
        SyncResult
            ``up_to_date`` when the counter did not move, ``updated`` after a
            full fetch, ``malformed_response`` when the fetch returned no
            usable list, ``in_progress`` when a pass for this account is
            already running, ``failed`` otherwise
        """
        if account.address in self._in_flight:
            self.logger.info(f"{account.address}: sync already in progress")
            return SyncResult(status=SyncStatus.IN_PROGRESS)

        self._in_flight.add(account.address)
        try:
            return await self._run_pass(account)
        except Exception as e:
            return self._failed(account.address, e)
        finally:
            self._in_flight.discard(account.address)

    async def _run_pass(self, account: Account) -> SyncResult:
        self.prefetch_aliases(account)

        known_token_ids = self.token_service.known_token_ids()
        try:
            summary = await self.indexer.account_info(account.address, known_token_ids)
        except Exception as e:
            raise IndexerException() from e
        summary = self._validate(AccountSummary, summary)

        self.dispatch_unknown_token_ids(summary.unknown_token_ids)

        if summary.counter == account.state:
            self.logger.debug(f"{account.address}: up to date at counter {summary.counter}")
            return SyncResult(status=SyncStatus.UP_TO_DATE)

        if summary.tokens:
            await self.balance_reconciler.apply_balances(account, summary.tokens)
        return await self.get_all_transactions(account, summary.counter)

    async def get_all_transactions(self, account: Account, counter: str) -> SyncResult:
        """
        Replace the account history with a full fetch and apply side effects.

        Stores the account with the new history and counter, announces new
        or newly confirmed operations (not on the first sync), and registers
        every counterparty with the lookup service. A response without a
        usable operation list changes nothing.

        Parameters
        ----------
        account : Account
            Account to update
        counter : str
            Indexer counter the fetch corresponds to

        Returns
        -------
        SyncResult
            ``updated``, or ``malformed_response`` when nothing was applied
        """
        known_token_ids = self.token_service.known_token_ids()
        try:
            page = await self.indexer.get_operations(
                account.address,
                known_token_ids,
                self.wallet_repository.wallet
            )
        except Exception as e:
            raise IndexerException() from e
        page = self._validate(OperationsPage, page)

        self.dispatch_unknown_token_ids(page.unknown_token_ids)

        operations = self._parse_operations(page.operations)
        if operations is None:
            self.logger.warning(
                f"{account.address}: malformed operations response "
                f"({type(page.operations).__name__}), nothing applied"
            )
            return SyncResult(
                status=SyncStatus.MALFORMED_RESPONSE,
                error=MalformedResponseException().message
            )

        old_activities = account.activities
        account.activities = operations
        old_state = account.state
        account.state = counter
        await self.wallet_repository.store_account(account)

        if old_state != "":
            self.activity_reconciler.reconcile(account, old_activities, operations)
        else:
            self.logger.info(f"{account.address}: excluded initial load at counter {counter}")

        for activity in operations:
            counterparty = self.counterparty_resolver.resolve_counterparty_address(
                activity, account, with_alias_lookup=False
            )
            # Operations without a counterparty (undelegation, reveal, ...) have nothing to track.
            if counterparty:
                self.lookup_service.check(counterparty)

        self.logger.info(f"{account.address}: synced {len(operations)} operations at counter {counter}")
        return SyncResult(status=SyncStatus.UPDATED)

    def prefetch_aliases(self, account: Account) -> list[str]:
        """
        Schedule alias lookups for transaction parties and wallet accounts.

        Parameters
        ----------
        account : Account
            Account whose current history is scanned

        Returns
        -------
        list[str]
            Deduplicated candidate addresses, in order of first appearance
        """
        candidates = []
        for activity in account.activities:
            if activity.type != ActivityType.TRANSACTION:
                continue
            for record in (activity.destination, activity.source):
                if record and record.address:
                    candidates.append(record.address)
        candidates.extend(a.address for a in self.wallet_repository.get_accounts())

        addresses = list(dict.fromkeys(candidates))
        for address in addresses:
            self.alias_cache.schedule_prefetch(address)
        return addresses

    def dispatch_unknown_token_ids(self, token_ids: list[str] | None) -> int:
        """
        Ask the token service for metadata of each ``contract:token_id``.

        Returns
        -------
        int
            Number of metadata searches issued
        """
        issued = 0
        for token_id in token_ids or []:
            try:
                contract, numeric_id = split_token_id(token_id)
            except InvalidTokenIdException:
                self.logger.warning(f"Skipping malformed token id {token_id!r}")
                continue
            try:
                self.token_service.search_metadata(contract, numeric_id)
                issued += 1
            except Exception as e:
                self.logger.warning(f"Metadata search for {token_id} failed: {e}")
        if issued:
            self.logger.info(f"Requested metadata for {issued} unknown tokens")
        return issued

    def _parse_operations(self, operations: Any) -> list[Activity] | None:
        if not isinstance(operations, list):
            return None
        try:
            return _activity_list.validate_python(operations)
        except ValidationError as e:
            self.logger.debug(f"Operation list failed validation: {e}")
            return None

    def _validate(self, model: type, value: Any) -> Any:
        if isinstance(value, model):
            return value
        try:
            return model.model_validate(value)
        except ValidationError as e:
            raise MalformedResponseException() from e

    def _failed(self, address: str, error: Exception) -> SyncResult:
        if isinstance(error, BaseCustomException):
            cause = f" ({error.__cause__})" if error.__cause__ else ""
            self.logger.warning(f"Sync of {address} failed: {error.message}{cause}")
            return SyncResult(status=SyncStatus.FAILED, error=error.message)

        self.logger.error(f"Sync of {address} failed: {error!r}")
        return SyncResult(status=SyncStatus.FAILED, error=str(error) or type(error).__name__)
