# chatroom/api/friends.py
from fastapi import APIRouter, Depends, status

from chatroom.api.dependencies import (
    get_current_user,
    get_event_outbox,
    get_friendship_interactor,
    get_present_user,
)
from chatroom.domain.events import FriendRequestUpdated
from chatroom.infrastructure import schemas
from chatroom.infrastructure.event_dispatcher import EventOutbox
from chatroom.interactors.friendship_interactor import FriendshipInteractor

router = APIRouter()


def queue_update(outbox: EventOutbox, friendship: schemas.Friendship) -> None:
    outbox.add(
        FriendRequestUpdated(
            request_id=friendship.id,
            requester_id=friendship.requester_id,
            addressee_id=friendship.addressee_id,
            status=friendship.status.value,
        )
    )


@router.get("", response_model=list[schemas.UserBasic])
async def read_friends(
    friendship_interactor: FriendshipInteractor = Depends(get_friendship_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await friendship_interactor.get_friends(current_user.id)


@router.get("/requests", response_model=list[schemas.FriendRequest])
async def read_friend_requests(
    friendship_interactor: FriendshipInteractor = Depends(get_friendship_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await friendship_interactor.get_incoming_requests(current_user.id)


@router.post(
    "/{user_id}",
    response_model=schemas.Friendship,
    status_code=status.HTTP_201_CREATED,
)
async def send_friend_request(
    user_id: int,
    friendship_interactor: FriendshipInteractor = Depends(get_friendship_interactor),
    current_user: schemas.User = Depends(get_present_user),
    outbox: EventOutbox = Depends(get_event_outbox),
):
    friendship = await friendship_interactor.send_request(user_id, current_user.id)
    queue_update(outbox, friendship)
    return friendship


@router.put("/requests/{request_id}/accept", response_model=schemas.StatusMessage)
async def accept_friend_request(
    request_id: int,
    friendship_interactor: FriendshipInteractor = Depends(get_friendship_interactor),
    current_user: schemas.User = Depends(get_present_user),
    outbox: EventOutbox = Depends(get_event_outbox),
):
    friendship = await friendship_interactor.accept_request(request_id, current_user.id)
    queue_update(outbox, friendship)
    return schemas.StatusMessage(message="Friend request accepted")


@router.put("/requests/{request_id}/reject", response_model=schemas.StatusMessage)
async def reject_friend_request(
    request_id: int,
    friendship_interactor: FriendshipInteractor = Depends(get_friendship_interactor),
    current_user: schemas.User = Depends(get_present_user),
    outbox: EventOutbox = Depends(get_event_outbox),
):
    friendship = await friendship_interactor.reject_request(request_id, current_user.id)
    queue_update(outbox, friendship)
    return schemas.StatusMessage(message="Friend request rejected")
