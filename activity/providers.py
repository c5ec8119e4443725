from datetime import timedelta
from typing import Annotated, AsyncIterable
import logging

from dishka import Provider, Scope, provide, from_context, FromComponent

from activity.alias_cache import AliasCache
from activity.domains_service import TezosDomainsService
from activity.interfaces import Indexer, LookupService, TokenMetadataService
from activity.notifications import MessageLog
from activity.repositories import RedisAliasSnapshotStore, RedisWalletRepository
from activity.services import ActivityReconciler, CounterpartyResolver, TokenBalanceReconciler
from activity.usecases import SyncOrchestrator
from core.environment.config import Settings
from core.redis.providers import CacheService


class ExternalProvider(Provider):
    """
    Collaborators owned by the host application, passed in as container context.
    """

    indexer = from_context(provides=Indexer, scope=Scope.APP)
    token_service = from_context(provides=TokenMetadataService, scope=Scope.APP)
    lookup_service = from_context(provides=LookupService, scope=Scope.APP)


class ActivityProvider(Provider):
    """
    Provider for the account activity sync services.
    """

    component = "activity"
    scope = Scope.APP

    @provide(scope=Scope.APP)
    def get_domains_service(
        self,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> TezosDomainsService:
        """
        Provide reverse domain lookup.

        Parameters
        ----------
        settings : Settings
            Application settings
        logger : logging.Logger
            Logger instance

        Returns
        -------
        TezosDomainsService
            Tezos Domains client
        """
        return TezosDomainsService(
            api_url=settings.tezos_domains_api_url,
            logger=logger,
            timeout=settings.domains_request_timeout
        )

    @provide(scope=Scope.APP)
    def get_alias_store(
        self,
        cache_service: Annotated[CacheService, FromComponent("cache")],
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> RedisAliasSnapshotStore:
        return RedisAliasSnapshotStore(cache_service, storage_key=settings.alias_storage_key)

    @provide(scope=Scope.APP)
    async def get_alias_cache(
        self,
        domains_service: Annotated[TezosDomainsService, FromComponent("activity")],
        store: Annotated[RedisAliasSnapshotStore, FromComponent("activity")],
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> AsyncIterable[AliasCache]:
        """
        Create the alias cache, seed it from the snapshot and arm its sweep.

        Parameters
        ----------
        domains_service : TezosDomainsService
            Reverse domain lookup
        store : RedisAliasSnapshotStore
            Snapshot storage
        settings : Settings
            Application settings
        logger : logging.Logger
            Logger instance

        Yields
        ------
        AliasCache
            Running alias cache, stopped when the container closes
        """
        alias_cache = AliasCache(
            resolver=domains_service,
            store=store,
            logger=logger,
            sweep_interval=settings.alias_sweep_interval
        )
        await alias_cache.load()
        alias_cache.start()
        try:
            yield alias_cache
        finally:
            await alias_cache.stop()

    @provide(scope=Scope.APP)
    async def get_wallet_repository(
        self,
        cache_service: Annotated[CacheService, FromComponent("cache")],
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> RedisWalletRepository:
        repository = RedisWalletRepository(
            cache_service=cache_service,
            logger=logger,
            storage_key=settings.wallet_storage_key
        )
        await repository.load()
        return repository

    @provide(scope=Scope.APP)
    def get_notifier(
        self,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> MessageLog:
        return MessageLog(logger=logger, capacity=settings.max_notifications)

    @provide(scope=Scope.APP)
    def get_counterparty_resolver(
        self,
        lookup_service: Annotated[LookupService, FromComponent()],
        alias_cache: Annotated[AliasCache, FromComponent("activity")]
    ) -> CounterpartyResolver:
        return CounterpartyResolver(lookup_service=lookup_service, alias_cache=alias_cache)

    @provide(scope=Scope.APP)
    def get_balance_reconciler(
        self,
        wallet_repository: Annotated[RedisWalletRepository, FromComponent("activity")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> TokenBalanceReconciler:
        return TokenBalanceReconciler(wallet_repository=wallet_repository, logger=logger)

    @provide(scope=Scope.APP)
    def get_activity_reconciler(
        self,
        token_service: Annotated[TokenMetadataService, FromComponent()],
        notifier: Annotated[MessageLog, FromComponent("activity")],
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> ActivityReconciler:
        return ActivityReconciler(
            token_service=token_service,
            notifier=notifier,
            logger=logger,
            notification_window=timedelta(seconds=settings.notification_window)
        )

    @provide(scope=Scope.APP)
    def get_sync_orchestrator(
        self,
        wallet_repository: Annotated[RedisWalletRepository, FromComponent("activity")],
        indexer: Annotated[Indexer, FromComponent()],
        token_service: Annotated[TokenMetadataService, FromComponent()],
        lookup_service: Annotated[LookupService, FromComponent()],
        alias_cache: Annotated[AliasCache, FromComponent("activity")],
        counterparty_resolver: Annotated[CounterpartyResolver, FromComponent("activity")],
        balance_reconciler: Annotated[TokenBalanceReconciler, FromComponent("activity")],
        activity_reconciler: Annotated[ActivityReconciler, FromComponent("activity")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> SyncOrchestrator:
        """
        Provide the sync orchestrator.

        Application scoped: the set of accounts with a pass in flight lives
        on this instance.

        Returns
        -------
        SyncOrchestrator
            Sync orchestrator instance
        """
        return SyncOrchestrator(
            wallet_repository=wallet_repository,
            indexer=indexer,
            token_service=token_service,
            lookup_service=lookup_service,
            alias_cache=alias_cache,
            counterparty_resolver=counterparty_resolver,
            balance_reconciler=balance_reconciler,
            activity_reconciler=activity_reconciler,
            logger=logger
        )
