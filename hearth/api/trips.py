"""
Trips. Anyone with trips:create logs their own; editing or deleting one
needs trips:manage unless you are the member who logged it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hearth.api.common import apply_changes, list_scoped, load_scoped
from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission
from hearth.auth.policies import owner_or, require, require_auth
from hearth.core.models import Trip, TripStatus
from hearth.services.container import Container, get_container
from hearth.storage import Collections

router = APIRouter(prefix="/trips", tags=["trips"])

can_act_on_trip = owner_or(Permission.TRIPS_MANAGE)


class TripCreate(BaseModel):
    location: str
    purpose: str
    depart_date: str
    return_date: str
    amount: float = Field(ge=0)
    currency: str = "USD"
    hotel: str | None = None


class TripUpdate(BaseModel):
    location: str | None = None
    purpose: str | None = None
    depart_date: str | None = None
    return_date: str | None = None
    amount: float | None = Field(default=None, ge=0)
    currency: str | None = None
    status: TripStatus | None = None
    hotel: str | None = None


@router.get("", response_model=list[Trip])
async def list_trips(
    ctx: AuthContext = Depends(require(Permission.TRIPS_VIEW)),
    container: Container = Depends(get_container),
):
    return await list_scoped(container.storage, Collections.TRIPS, ctx, sort_key="depart_date", reverse=True)


@router.post("", response_model=Trip, status_code=201)
async def create_trip(
    data: TripCreate,
    ctx: AuthContext = Depends(require(Permission.TRIPS_CREATE)),
    container: Container = Depends(get_container),
):
    trip = Trip(family_id=ctx.tenant_id, member_id=ctx.member_id, **data.model_dump())
    await container.storage.save(Collections.TRIPS, trip.id, trip.model_dump(mode="json"))
    return trip


@router.put("/{trip_id}", response_model=Trip)
async def update_trip(
    trip_id: str,
    data: TripUpdate,
    ctx: AuthContext = Depends(require_auth()),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.TRIPS, trip_id, ctx, "Trip")
    can_act_on_trip(ctx, doc)

    changes = data.model_dump(exclude_unset=True, mode="json")
    # Owners may edit details, but only trip managers set the status
    if "status" in changes and changes["status"] != doc["status"]:
        ctx.require(Permission.TRIPS_MANAGE)

    trip = apply_changes(Trip, doc, changes)
    await container.storage.save(Collections.TRIPS, trip.id, trip.model_dump(mode="json"))
    return trip


@router.delete("/{trip_id}")
async def delete_trip(
    trip_id: str,
    ctx: AuthContext = Depends(require_auth()),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.TRIPS, trip_id, ctx, "Trip")
    can_act_on_trip(ctx, doc)
    await container.storage.delete(Collections.TRIPS, trip_id)
    return {"message": "Trip deleted"}
