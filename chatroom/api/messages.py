# chatroom/api/messages.py
from fastapi import APIRouter, Depends

from chatroom.api.dependencies import (
    get_event_outbox,
    get_message_interactor,
    get_present_user,
)
from chatroom.domain.events import (
    MessageCreated,
    MessageDeleted,
    MessageEvent,
    MessageUpdated,
    SenderInfo,
)
from chatroom.infrastructure import schemas
from chatroom.infrastructure.event_dispatcher import EventOutbox
from chatroom.interactors.message_interactor import MessageInteractor

router = APIRouter()


def to_event(event_cls: type[MessageEvent], message: schemas.Message, **extra):
    return event_cls(
        message_id=message.id,
        room_id=message.room_id,
        sender_id=message.sender_id,
        recipient_id=message.recipient_id,
        content=message.content,
        message_type=message.message_type.value,
        created_at=message.created_at,
        sender=SenderInfo(
            id=message.sender.id, display_name=message.sender.display_name
        ),
        is_deleted=message.is_deleted,
        **extra,
    )


def queue_created(outbox: EventOutbox, message: schemas.Message) -> None:
    outbox.add(to_event(MessageCreated, message))


@router.put("/{message_id}", response_model=schemas.Message)
async def edit_message(
    message_id: int,
    message_update: schemas.MessageUpdate,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_present_user),
    outbox: EventOutbox = Depends(get_event_outbox),
):
    updated_message = await message_interactor.edit_message(
        message_id, message_update, current_user.id
    )
    outbox.add(
        to_event(MessageUpdated, updated_message, edited_at=updated_message.edited_at)
    )
    return updated_message


@router.delete("/{message_id}", response_model=schemas.StatusMessage)
async def delete_message(
    message_id: int,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_present_user),
    outbox: EventOutbox = Depends(get_event_outbox),
):
    deleted_message = await message_interactor.delete_message(
        message_id, current_user.id
    )
    outbox.add(to_event(MessageDeleted, deleted_message))
    return schemas.StatusMessage(message="Message deleted successfully")
