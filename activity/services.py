import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from activity.alias_cache import AliasCache
from activity.entities import Account, Activity, ActivityType, AddressRecord, TokenBalanceUpdate
from activity.interfaces import LookupService, NotificationService, TokenMetadataService, WalletRepository


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CounterpartyResolver:
    """
    Finds "the other party" of an operation relative to an account.

    Parameters
    ----------
    lookup_service : LookupService
        Address book used for display names
    alias_cache : AliasCache
        Cached domain aliases
    """

    def __init__(self, lookup_service: LookupService, alias_cache: AliasCache):
        self.lookup_service = lookup_service
        self.alias_cache = alias_cache

    def counterparty_record(self, activity: Activity, account: Account) -> AddressRecord:
        """
        Pick the counterparty record of an operation.

        Delegations point at the delegate (empty when undelegating),
        transactions and originations at whichever side is not the account.
        Other operation kinds have no counterparty.

        Parameters
        ----------
        activity : Activity
            Operation
        account : Account
            Account the operation belongs to

        Returns
        -------
        AddressRecord
            Counterparty, with an empty address when there is none
        """
        if activity.type == ActivityType.DELEGATION:
            return activity.destination or AddressRecord()

        if activity.type in (ActivityType.TRANSACTION, ActivityType.ORIGINATION):
            source_address = activity.source.address if activity.source else None
            if account.address == source_address:
                return activity.destination or AddressRecord()
            return activity.source or AddressRecord()

        return AddressRecord()

    def resolve_counterparty_address(
        self,
        activity: Activity,
        account: Account,
        with_alias_lookup: bool = True
    ) -> str:
        """
        Counterparty of an operation as a string.

        Parameters
        ----------
        activity : Activity
            Operation
        account : Account
            Account the operation belongs to
        with_alias_lookup : bool
            Return the display form (cached domain alias, then address book)
            instead of the raw address

        Returns
        -------
        str
            Raw address or display name, empty when there is no counterparty
        """
        record = self.counterparty_record(activity, account)
        if not with_alias_lookup or not record.address:
            return record.address

        alias = self.alias_cache.get_alias(record.address)
        if alias:
            return alias
        return self.lookup_service.resolve(record)


class TokenBalanceReconciler:
    """
    Folds indexer token balances into an account.

    Parameters
    ----------
    wallet_repository : WalletRepository
        Persists the account after the update
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, wallet_repository: WalletRepository, logger: logging.Logger):
        self.wallet_repository = wallet_repository
        self.logger = logger

    async def apply_balances(
        self,
        account: Account,
        tokens: Iterable[TokenBalanceUpdate | dict[str, Any]] | None
    ) -> int:
        """
        Upsert balances under ``contract:token_id`` and store the account.

        The account is stored even when ``tokens`` is empty.

        Parameters
        ----------
        account : Account
            Account to update
        tokens : Iterable[TokenBalanceUpdate | dict] | None
            Reported balances

        Returns
        -------
        int
            Number of balances written
        """
        applied = 0
        for token in tokens or []:
            update = token if isinstance(token, TokenBalanceUpdate) else TokenBalanceUpdate.model_validate(token)
            account.update_token_balance(update.key, update.balance)
            applied += 1

        self.logger.debug(f"{account.address}: applied {applied} token balances")
        await self.wallet_repository.store_account(account)
        return applied


class ActivityReconciler:
    """
    Raises notifications for operations that are new or newly confirmed.

    Parameters
    ----------
    token_service : TokenMetadataService
        Formats transferred amounts
    notifier : NotificationService
        Receives the notification texts
    logger : logging.Logger
        Logger instance
    notification_window : timedelta
        Older operations are never announced
    clock : Callable[[], datetime]
        Source of "now"
    """

    def __init__(
        self,
        token_service: TokenMetadataService,
        notifier: NotificationService,
        logger: logging.Logger,
        notification_window: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utc_now
    ):
        self.token_service = token_service
        self.notifier = notifier
        self.logger = logger
        self.notification_window = notification_window
        self.clock = clock

    def reconcile(
        self,
        account: Account,
        old_activities: list[Activity],
        new_activities: list[Activity]
    ) -> list[str]:
        """
        Compare two histories of the same account and notify about changes.

        An operation is announced when its hash is absent from the old list,
        or when the old entry was still pending. Operations older than the
        notification window are skipped.

        Parameters
        ----------
        account : Account
            Account both lists belong to
        old_activities : list[Activity]
            History before the fetch
        new_activities : list[Activity]
            History after the fetch

        Returns
        -------
        list[str]
            Messages sent to the notifier
        """
        previous: dict[str, Activity] = {}
        for old in old_activities:
            previous.setdefault(old.hash, old)

        now = self.clock()
        sent = []
        for activity in new_activities:
            old = previous.get(activity.hash)
            if old is not None and not old.is_pending:
                continue

            time_diff = now - (activity.timestamp or now)
            if time_diff >= self.notification_window:
                continue

            try:
                messages = self._describe(account, activity)
            except Exception as e:
                self.logger.warning(f"Could not describe operation {activity.hash}: {e}")
                continue

            for message in messages:
                self.notifier.add_success(message)
                sent.append(message)

        return sent

    def _describe(self, account: Account, activity: Activity) -> list[str]:
        prefix = account.short_address()

        if activity.type == ActivityType.TRANSACTION:
            messages = []
            amount = self.token_service.format_amount(activity.token_id, activity.amount or "0")
            if activity.source and account.address == activity.source.address:
                messages.append(f"{prefix}: Sent {amount}")
            if activity.destination and account.address == activity.destination.address:
                messages.append(f"{prefix}: Received {amount}")
            return messages
        if activity.type == ActivityType.DELEGATION:
            return [f"{prefix}: Delegate updated"]
        if activity.type == ActivityType.ORIGINATION:
            return [f"{prefix}: Contract originated"]
        if activity.type == ActivityType.ACTIVATION:
            return [f"{prefix}: Account activated"]
        return []
