"""
FastAPI dependencies.

The reservation gateway is created once in the app lifespan and kept on
``app.state``; routers receive it from here.
"""

from typing import Annotated

from fastapi import Depends, Request

from app.services.reservations import ReservationGateway


def get_gateway(request: Request) -> ReservationGateway:
    return request.app.state.gateway


Gateway = Annotated[ReservationGateway, Depends(get_gateway)]
