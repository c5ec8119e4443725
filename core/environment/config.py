import os
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings using Pydantic Settings.

    Attributes
    ----------
    redis_host : str
        Redis host for wallet and alias persistence
    redis_port : int
        Redis port
    redis_db : int
        Redis database number
    redis_password : str
        Redis password (optional)
    wallet_storage_key : str
        Redis key holding the serialized wallet
    alias_storage_key : str
        Redis key holding the alias snapshot
    alias_sweep_interval : float
        Seconds between sweeps of unresolved aliases
    notification_window : float
        Only operations younger than this many seconds raise notifications
    tezos_domains_api_url : str
        Tezos Domains GraphQL endpoint
    domains_request_timeout : float
        Timeout in seconds for a single reverse lookup
    max_notifications : int
        Number of notifications kept by the in-process message log
    log_level : str
        Level of the service logger
    logger_name : str
        Name of the service logger
    """

    redis_host: str
    redis_port: int
    redis_db: int
    redis_password: str

    wallet_storage_key: str = "wallet"
    alias_storage_key: str = "tezos-domains"

    alias_sweep_interval: float = 5 * 60
    notification_window: float = 60 * 60

    tezos_domains_api_url: str = "https://api.tezos.domains/graphql"
    domains_request_timeout: float = 10.0

    max_notifications: int = 100

    log_level: str = "INFO"
    logger_name: str = "activity_sync"

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False
    )
