from dishka import AsyncContainer, make_async_container
from dishka.integrations.fastapi import FastapiProvider

from activity.interfaces import Indexer, LookupService, TokenMetadataService
from activity.providers import ActivityProvider, ExternalProvider
from core.environment.config import Settings
from core.environment.providers import EnvironmentProvider
from core.logging.providers import LoggerProvider
from core.redis.providers import RedisProvider, CacheProvider


def build_container(
    indexer: Indexer,
    token_service: TokenMetadataService,
    lookup_service: LookupService,
    settings: Settings | None = None
) -> AsyncContainer:
    """
    Assemble the application container.

    Parameters
    ----------
    indexer : Indexer
        Indexer client of the host application
    token_service : TokenMetadataService
        Token registry of the host application
    lookup_service : LookupService
        Address book of the host application
    settings : Settings | None
        Preloaded settings, read from the environment when omitted

    Returns
    -------
    AsyncContainer
        Application container
    """
    return make_async_container(
        FastapiProvider(),
        EnvironmentProvider(settings),
        LoggerProvider(),
        RedisProvider(),
        CacheProvider(),
        ExternalProvider(),
        ActivityProvider(),
        context={
            Indexer: indexer,
            TokenMetadataService: token_service,
            LookupService: lookup_service,
        }
    )
