from pydantic import BaseModel, ConfigDict, Field, field_validator

from activity.entities import SyncStatus


class SyncRequest(BaseModel):
    """
    Request schema for synchronizing one account.

    Attributes
    ----------
    address : str
        Address of a wallet account
    """
    address: str = Field(..., description="Address of a wallet account")

    @field_validator('address')
    @classmethod
    def validate_address(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 64:
            raise ValueError('Invalid account address')
        return v


class SyncResponse(BaseModel):
    """
    Response schema for a sync pass.

    Attributes
    ----------
    address : str
        Account address
    status : SyncStatus
        Outcome of the pass
    up_to_date : bool | None
        True when nothing changed, False after a full fetch, None when the
        pass did not complete
    error : str | None
        Message key of the failure, if any
    """
    address: str
    status: SyncStatus
    up_to_date: bool | None = None
    error: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AliasResponse(BaseModel):
    """
    Response schema for a cached alias.

    Attributes
    ----------
    address : str
        Address
    alias : str | None
        Domain alias, empty when the address has none
    known : bool
        Whether the address was ever resolved
    """
    address: str
    alias: str | None = None
    known: bool


class NotificationsResponse(BaseModel):
    """
    Response schema for recent notifications.

    Attributes
    ----------
    messages : list[str]
        Most recent notifications, oldest first
    """
    messages: list[str]
