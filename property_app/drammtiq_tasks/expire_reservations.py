import dramatiq

from core.get_db import session_scope
from services.reservation_service import ReservationService


def create_reservation_expiry_task():
    @dramatiq.actor(
        queue_name="expire_reservations",
        max_retries=3,
        time_limit=600_000,
    )
    async def release_expired_reservations():
        async with session_scope() as session:
            return await ReservationService(session).release_expired_reservations()

    return release_expired_reservations
