"""
Customer-facing listing of a user's own reservations.
"""

from fastapi import APIRouter, Query

from app.dependencies import Gateway
from app.models import Reservation

router = APIRouter(prefix="/api/users/{user_id}", tags=["users"])


@router.get(
    "/reservations",
    response_model=list[Reservation],
    operation_id="listUserReservations",
    summary="Reservations of a user, ordered by date and start time",
)
async def list_user_reservations(
    user_id: str,
    gateway: Gateway,
    include_cancelled: bool = Query(True, description="Also return cancelled reservations"),
) -> list[Reservation]:
    return await gateway.list_user_reservations(user_id, include_cancelled)
