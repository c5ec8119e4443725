from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from core.exceptions import InvalidTokenIdException


PENDING_STATUS = 0


class ActivityType(StrEnum):
    """Operation kinds that the sync engine reacts to. Other tags pass through."""

    TRANSACTION = "transaction"
    DELEGATION = "delegation"
    ORIGINATION = "origination"
    ACTIVATION = "activation"


class AddressRecord(BaseModel):
    """
    Party of an operation.

    Attributes
    ----------
    address : str
        Account address, empty when there is no counterparty
    """
    address: str = ""

    model_config = ConfigDict(from_attributes=True, extra="allow")


class Activity(BaseModel):
    """
    One on-chain operation of an account.

    Attributes
    ----------
    hash : str
        Operation hash, unique within an account history
    type : str
        Operation kind (transaction, delegation, origination, activation, ...)
    status : int
        0 while pending, anything else once confirmed
    timestamp : datetime | None
        Operation time
    source : AddressRecord | None
        Sender
    destination : AddressRecord | None
        Receiver, delegate or originated contract
    amount : str | None
        Raw amount (transactions only)
    token_id : str | None
        ``contract:token_id`` of the transferred token, None for the native coin
    """
    hash: str
    type: str
    status: int
    timestamp: datetime | None = None
    source: AddressRecord | None = None
    destination: AddressRecord | None = None
    amount: str | None = None
    token_id: str | None = Field(default=None, validation_alias=AliasChoices("token_id", "tokenId"))

    model_config = ConfigDict(from_attributes=True)

    @field_validator('amount', mode='before')
    @classmethod
    def amount_to_str(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator('timestamp')
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING_STATUS


class Account(BaseModel):
    """
    Wallet account as seen by the sync engine.

    Attributes
    ----------
    address : str
        Account address
    state : str
        Last indexer counter applied, empty before the first sync
    activities : list[Activity]
        Operation history as returned by the last full fetch
    token_balances : dict[str, str]
        Balances keyed by ``contract:token_id``
    """
    address: str
    state: str = ""
    activities: list[Activity] = Field(default_factory=list)
    token_balances: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)

    def short_address(self) -> str:
        if len(self.address) <= 10:
            return self.address
        return f"{self.address[:6]}...{self.address[-4:]}"

    def update_token_balance(self, token_id: str, balance: str) -> None:
        self.token_balances[token_id] = balance


class Wallet(BaseModel):
    """
    Persisted set of accounts.

    Attributes
    ----------
    accounts : list[Account]
        Accounts in wallet order
    """
    accounts: list[Account] = Field(default_factory=list)

    def get_account(self, address: str) -> Account | None:
        for account in self.accounts:
            if account.address == address:
                return account
        return None


class TokenBalanceUpdate(BaseModel):
    """
    Token balance reported by the indexer.

    Attributes
    ----------
    contract : str
        Token contract address
    token_id : str
        Numeric token id inside the contract
    balance : str
        Raw balance, kept as a decimal string
    """
    contract: str
    token_id: str = Field(validation_alias=AliasChoices("token_id", "tokenId"))
    balance: str

    @field_validator('token_id', 'balance', mode='before')
    @classmethod
    def to_str(cls, v: Any) -> Any:
        # Balances exceed float precision; ints and Decimals are rendered exactly.
        if v is not None and not isinstance(v, str):
            return str(v)
        return v

    @property
    def key(self) -> str:
        return f"{self.contract}:{self.token_id}"


class AccountSummary(BaseModel):
    """
    Lightweight indexer answer used for change detection.

    Attributes
    ----------
    counter : str
        Opaque freshness token
    tokens : list[TokenBalanceUpdate] | None
        Current token balances
    unknown_token_ids : list[str] | None
        ``contract:token_id`` ids seen on-chain without local metadata
    """
    counter: str
    tokens: list[TokenBalanceUpdate] | None = None
    unknown_token_ids: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("unknown_token_ids", "unknownTokenIds")
    )

    @field_validator('counter', mode='before')
    @classmethod
    def counter_to_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class OperationsPage(BaseModel):
    """
    Full operation fetch. ``operations`` is left unvalidated here; the
    orchestrator decides whether it is a usable list.
    """
    operations: Any = None
    unknown_token_ids: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("unknown_token_ids", "unknownTokenIds")
    )


class SyncStatus(StrEnum):
    """Outcome of one sync pass."""

    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    MALFORMED_RESPONSE = "malformed_response"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"


class SyncResult(BaseModel):
    """
    Result of ``SyncOrchestrator.sync``.

    Attributes
    ----------
    status : SyncStatus
        Outcome of the pass
    error : str | None
        Message key of the swallowed failure, if any
    """
    status: SyncStatus
    error: str | None = None

    @property
    def up_to_date(self) -> bool | None:
        if self.status == SyncStatus.UP_TO_DATE:
            return True
        if self.status in (SyncStatus.UPDATED, SyncStatus.MALFORMED_RESPONSE):
            return False
        return None


def split_token_id(token_id: str) -> tuple[str, str]:
    """
    Split a ``contract:token_id`` identifier.

    Parameters
    ----------
    token_id : str
        Token identifier

    Returns
    -------
    tuple[str, str]
        Contract address and numeric token id; segments after the second
        separator are ignored

    Raises
    ------
    InvalidTokenIdException
        If the contract or the numeric id is missing
    """
    parts = token_id.split(":")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise InvalidTokenIdException()
    return parts[0], parts[1]
