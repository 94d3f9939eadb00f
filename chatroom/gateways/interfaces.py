# chatroom/gateways/interfaces.py
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import List, Optional

from chatroom.infrastructure import schemas
from chatroom.infrastructure.security import SecurityService
from chatroom.infrastructure.uow import UoWModel


class IUserGateway(ABC):
    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def create_user(
        self, user: schemas.UserCreate, security_service: SecurityService
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def update_user(
        self,
        user: UoWModel,
        user_update: schemas.UserUpdate,
        security_service: SecurityService,
    ) -> UoWModel:
        pass

    @abstractmethod
    async def update_status(self, user: UoWModel, status: str) -> UoWModel:
        pass

    @abstractmethod
    async def get_users_by_ids(self, user_ids: Iterable[int]) -> List[UoWModel]:
        pass

    @abstractmethod
    async def search_users(
        self, query: str, current_user_id: int, limit: int = 20
    ) -> List[UoWModel]:
        pass

    @abstractmethod
    async def verify_password(
        self, user: UoWModel, password: str, security_service: SecurityService
    ) -> bool:
        pass


class IRoomGateway(ABC):
    @abstractmethod
    async def get_room(self, room_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_invite_code(self, invite_code: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def invite_code_exists(self, invite_code: str) -> bool:
        pass

    @abstractmethod
    async def create_room(
        self, room: schemas.RoomCreate, creator_id: int, invite_code: str
    ) -> UoWModel:
        pass

    @abstractmethod
    async def set_invite_code(self, room: UoWModel, invite_code: str) -> UoWModel:
        pass


class IMembershipGateway(ABC):
    @abstractmethod
    async def get_membership(self, room_id: int, user_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def is_member(self, room_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    async def add_member(
        self, room_id: int, user_id: int, role: str = "member"
    ) -> UoWModel:
        pass

    @abstractmethod
    async def remove_member(self, room_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    async def get_members(self, room_id: int) -> List[UoWModel]:
        pass

    @abstractmethod
    async def get_user_memberships(self, user_id: int) -> List[UoWModel]:
        pass

    @abstractmethod
    async def mark_read(self, membership: UoWModel, read_at: datetime) -> UoWModel:
        pass


class IMessageGateway(ABC):
    @abstractmethod
    async def get_message(self, message_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def create_message(
        self,
        message: schemas.MessageCreate,
        sender_id: int,
        room_id: Optional[int] = None,
        recipient_id: Optional[int] = None,
    ) -> UoWModel:
        pass

    @abstractmethod
    async def get_room_messages(self, room_id: int, limit: int = 50) -> List[UoWModel]:
        pass

    @abstractmethod
    async def get_direct_messages(
        self, user_id: int, other_user_id: int, limit: int = 50
    ) -> List[UoWModel]:
        pass

    @abstractmethod
    async def edit_message(self, message: UoWModel, content: str) -> UoWModel:
        pass

    @abstractmethod
    async def soft_delete_message(self, message: UoWModel) -> UoWModel:
        pass

    @abstractmethod
    async def get_latest_room_messages(
        self, room_ids: Iterable[int]
    ) -> dict[int, UoWModel]:
        pass

    @abstractmethod
    async def get_latest_direct_messages(self, user_id: int) -> dict[int, UoWModel]:
        pass

    @abstractmethod
    async def count_unread_room_messages(
        self, room_id: int, user_id: int, since: Optional[datetime]
    ) -> int:
        pass


class IFriendshipGateway(ABC):
    @abstractmethod
    async def get_request(self, request_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def find_active_between(
        self, user_id: int, other_user_id: int
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def create_request(
        self, requester_id: int, addressee_id: int
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def set_status(self, friendship: UoWModel, status: str) -> UoWModel:
        pass

    @abstractmethod
    async def get_friends(self, user_id: int) -> List[UoWModel]:
        pass

    @abstractmethod
    async def get_incoming_requests(self, user_id: int) -> List[UoWModel]:
        pass
