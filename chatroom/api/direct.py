# chatroom/api/direct.py
from fastapi import APIRouter, Depends, Query, status

from chatroom.api.dependencies import (
    get_current_user,
    get_event_outbox,
    get_message_interactor,
    get_present_user,
)
from chatroom.api.messages import queue_created
from chatroom.infrastructure import schemas
from chatroom.infrastructure.event_dispatcher import EventOutbox
from chatroom.interactors.message_interactor import MessageInteractor

router = APIRouter()


@router.get("/{user_id}/messages", response_model=list[schemas.Message])
async def read_direct_messages(
    user_id: int,
    limit: int | None = Query(None, description="Number of most recent messages"),
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await message_interactor.get_direct_messages(
        user_id, current_user.id, limit
    )


@router.post(
    "/{user_id}/messages",
    response_model=schemas.Message,
    status_code=status.HTTP_201_CREATED,
)
async def send_direct_message(
    user_id: int,
    message: schemas.MessageCreate,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_present_user),
    outbox: EventOutbox = Depends(get_event_outbox),
):
    new_message = await message_interactor.send_direct_message(
        user_id, message, current_user.id
    )
    queue_created(outbox, new_message)
    return new_message
