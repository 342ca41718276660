import uuid
from decimal import Decimal

from models.enums import UserRole
from models.models import Property, User
from services.reservation_service import ReservationService


async def make_user(db, role: UserRole = UserRole.USER, **overrides) -> uuid.UUID:
    user_id = uuid.uuid4()
    db.add(
        User(
            id=user_id,
            first_name=overrides.pop("first_name", "Ada"),
            last_name=overrides.pop("last_name", "Obi"),
            email=overrides.pop("email", f"{user_id.hex[:10]}@example.com"),
            phone_number=overrides.pop("phone_number", "+2348030000000"),
            role=role,
            **overrides,
        )
    )
    await db.commit()
    return user_id


async def make_property(
    db,
    owner_id: uuid.UUID,
    agent_id: uuid.UUID | None = None,
    price: Decimal = Decimal("5000000"),
    **overrides,
) -> uuid.UUID:
    property_id = uuid.uuid4()
    db.add(
        Property(
            id=property_id,
            title=overrides.pop("title", "3 Bedroom Duplex, Lekki"),
            location=overrides.pop("location", "Lekki Phase 1, Lagos"),
            category=overrides.pop("category", "Duplex"),
            price=price,
            owner_id=owner_id,
            agent_id=agent_id,
            **overrides,
        )
    )
    await db.commit()
    return property_id


async def reserve(db, gateway, config, user_id: uuid.UUID, property_id: uuid.UUID) -> str:
    service = ReservationService(db, gateway=gateway, config=config)
    init = await service.initialize_reservation_fee(user_id, property_id)
    await service.verify_reservation_fee(init["reference"])
    return init["reference"]


async def refetch(db, model, pk):
    return await db.get(model, pk, populate_existing=True)
