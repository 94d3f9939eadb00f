# chatroom/api/users.py
from fastapi import APIRouter, Depends, Query

from chatroom.api.dependencies import (
    get_current_user,
    get_present_user,
    get_user_interactor,
)
from chatroom.infrastructure import schemas
from chatroom.interactors.user_interactor import UserInteractor

me_router = APIRouter()
router = APIRouter()


@me_router.get("/me", response_model=schemas.User)
async def read_me(current_user: schemas.User = Depends(get_current_user)):
    return current_user


@me_router.put("/me", response_model=schemas.User)
async def update_me(
    user_update: schemas.UserUpdate,
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_present_user),
):
    return await user_interactor.update_profile(current_user.id, user_update)


@me_router.put("/me/status", response_model=schemas.User)
async def update_my_status(
    presence: schemas.PresenceUpdate,
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    # heartbeat; an explicit away/offline wins over the implicit online
    return await user_interactor.set_presence(current_user.id, presence.status)


@router.get("/search", response_model=list[schemas.UserBasic])
async def search_users(
    query: str = Query(..., min_length=1),
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await user_interactor.search_users(query, current_user.id)


@router.get("/{user_id}", response_model=schemas.UserBasic)
async def read_user(
    user_id: int,
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    return await user_interactor.get_profile(user_id)
