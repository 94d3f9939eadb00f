# chatroom/api/chats.py
from fastapi import APIRouter, Depends

from chatroom.api.dependencies import get_current_user, get_message_interactor
from chatroom.infrastructure import schemas
from chatroom.interactors.message_interactor import MessageInteractor

router = APIRouter()


@router.get("", response_model=list[schemas.RecentChat])
async def read_recent_chats(
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await message_interactor.get_recent_chats(current_user.id)
