from fastapi import APIRouter
from dishka.integrations.fastapi import inject
from dishka import FromComponent
from typing import Annotated
from activity.alias_cache import AliasCache
from activity.notifications import MessageLog
from activity.schemas import (
    AliasResponse,
    NotificationsResponse,
    SyncRequest,
    SyncResponse
)
from activity.usecases import SyncOrchestrator

router = APIRouter(
    prefix="/api/activity",
    tags=["Activity"]
)


@router.post("/sync", response_model=SyncResponse)
@inject
async def sync_account(
    request: SyncRequest,
    orchestrator: Annotated[
        SyncOrchestrator, FromComponent("activity")
    ]
) -> SyncResponse:
    """
    Run one synchronization pass for a wallet account.

    Parameters
    ----------
    request : SyncRequest
        Request with the account address
    orchestrator : SyncOrchestrator
        Sync orchestrator

    Returns
    -------
    SyncResponse
        Outcome of the pass
    """
    result = await orchestrator.sync(request.address)
    return SyncResponse(
        address=request.address,
        status=result.status,
        up_to_date=result.up_to_date,
        error=result.error
    )


@router.get("/alias/{address}", response_model=AliasResponse)
@inject
async def get_alias(
    address: str,
    alias_cache: Annotated[
        AliasCache, FromComponent("activity")
    ]
) -> AliasResponse:
    """
    Get the cached domain alias of an address.

    Parameters
    ----------
    address : str
        Address to look up
    alias_cache : AliasCache
        Alias cache

    Returns
    -------
    AliasResponse
        Cached alias information
    """
    alias = alias_cache.get_alias(address)
    return AliasResponse(address=address, alias=alias, known=alias is not None)


@router.get("/notifications", response_model=NotificationsResponse)
@inject
async def get_notifications(
    notifier: Annotated[
        MessageLog, FromComponent("activity")
    ]
) -> NotificationsResponse:
    """
    Get the most recent notifications.

    Parameters
    ----------
    notifier : MessageLog
        In-process notification log

    Returns
    -------
    NotificationsResponse
        Recent notifications
    """
    return NotificationsResponse(messages=notifier.messages())
