# chatroom/api/rooms.py
from fastapi import APIRouter, Depends, Query, status

from chatroom.api.dependencies import (
    get_current_user,
    get_event_outbox,
    get_message_interactor,
    get_present_user,
    get_room_interactor,
)
from chatroom.api.messages import queue_created
from chatroom.infrastructure import schemas
from chatroom.infrastructure.event_dispatcher import EventOutbox
from chatroom.interactors.message_interactor import MessageInteractor
from chatroom.interactors.room_interactor import RoomInteractor

router = APIRouter()


@router.get("", response_model=list[schemas.RoomSummary])
async def read_rooms(
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await room_interactor.get_user_rooms(current_user.id)


@router.post("", response_model=schemas.Room, status_code=status.HTTP_201_CREATED)
async def create_room(
    room: schemas.RoomCreate,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_present_user),
):
    return await room_interactor.create_room(room, current_user.id)


@router.get("/invite/{invite_code}", response_model=schemas.Room)
async def read_room_by_invite_code(
    invite_code: str,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await room_interactor.get_room_by_invite_code(invite_code)


@router.post("/join/{invite_code}", response_model=schemas.JoinResult)
async def join_room_by_invite_code(
    invite_code: str,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_present_user),
):
    return await room_interactor.join_by_invite_code(invite_code, current_user.id)


@router.get("/{room_id}", response_model=schemas.Room)
async def read_room(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await room_interactor.get_room(room_id, current_user.id)


@router.post("/{room_id}/join", response_model=schemas.JoinResult)
async def join_room(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_present_user),
):
    return await room_interactor.join_room(room_id, current_user.id)


@router.get("/{room_id}/members", response_model=list[schemas.Member])
async def read_members(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await room_interactor.get_members(room_id, current_user.id)


@router.post("/{room_id}/members", response_model=schemas.Member)
async def add_member(
    room_id: int,
    member: schemas.MemberAdd,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_present_user),
):
    return await room_interactor.add_member_by_email(
        room_id, member.email, current_user.id
    )


@router.delete("/{room_id}/members/{user_id}", response_model=schemas.StatusMessage)
async def remove_member(
    room_id: int,
    user_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_present_user),
):
    return await room_interactor.remove_member(room_id, user_id, current_user.id)


@router.post("/{room_id}/invite", response_model=schemas.InviteCode)
async def regenerate_invite_code(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_present_user),
):
    return await room_interactor.regenerate_invite_code(room_id, current_user.id)


@router.post("/{room_id}/read", response_model=schemas.StatusMessage)
async def mark_room_read(
    room_id: int,
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    current_user: schemas.User = Depends(get_present_user),
):
    return await room_interactor.mark_read(room_id, current_user.id)


@router.get("/{room_id}/messages", response_model=list[schemas.Message])
async def read_room_messages(
    room_id: int,
    limit: int | None = Query(None, description="Number of most recent messages"),
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await message_interactor.get_room_messages(room_id, current_user.id, limit)


@router.post(
    "/{room_id}/messages",
    response_model=schemas.Message,
    status_code=status.HTTP_201_CREATED,
)
async def send_room_message(
    room_id: int,
    message: schemas.MessageCreate,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_present_user),
    outbox: EventOutbox = Depends(get_event_outbox),
):
    new_message = await message_interactor.send_room_message(
        room_id, message, current_user.id
    )
    queue_created(outbox, new_message)
    return new_message
