import uuid

from models.enums import UserRole
from models.models import Chat, Property, User

ADMIN_ROLES = {UserRole.ADMIN, UserRole.SUPER_ADMIN}
SALE_MARKING_ROLES = {UserRole.ADMIN, UserRole.SUPER_ADMIN, UserRole.SELLER}


class MarketplacePolicy:
    @staticmethod
    async def is_admin(user: User) -> bool:
        return user.role in ADMIN_ROLES

    @staticmethod
    async def can_mark_sale(user: User) -> bool:
        return user.role in SALE_MARKING_ROLES

    @staticmethod
    async def can_mark_sale_for(user: User, prop: Property) -> bool:
        return prop.owner_id == user.id or user.role == UserRole.SUPER_ADMIN

    @staticmethod
    async def can_review_sale(user: User) -> bool:
        return user.role in ADMIN_ROLES

    @staticmethod
    async def can_mark_payment_received(user: User) -> bool:
        return user.role in ADMIN_ROLES

    @staticmethod
    async def can_send_message(user: User) -> bool:
        # super admins only observe chats
        return user.role != UserRole.SUPER_ADMIN

    @staticmethod
    async def is_chat_participant(chat: Chat, user_id: uuid.UUID) -> bool:
        return user_id in {chat.user_id, chat.agent_id}

    @staticmethod
    async def is_chat_owner(chat: Chat, user_id: uuid.UUID) -> bool:
        return chat.user_id == user_id

    @staticmethod
    async def can_view_payment_details(user: User) -> bool:
        return user.role not in ADMIN_ROLES
