from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.database import get_session
from safeguard.core.security import get_current_user
from safeguard.models.hazard import Hazard, HazardControl
from safeguard.schemas.catalog import (
    ControlCreate,
    ControlRead,
    ControlUpdate,
    HazardControlCreate,
    HazardControlRead,
    HazardControlsRead,
    HazardCreate,
    HazardRead,
    PackImport,
    RoleCreate,
    RoleRead,
)
from safeguard.services import catalog_service
from safeguard.services.status_rules import risk_level_for_score

router = APIRouter(tags=["catalog"])


def _hazard_read(hazard: Hazard) -> HazardRead:
    return HazardRead(**hazard.model_dump(), risk=risk_level_for_score(hazard.pre_control_risk))


def _mapping_read(row: HazardControl) -> HazardControlRead:
    # relationships are not loaded after a plain refresh
    return HazardControlRead(**row.model_dump())


# Roles
@router.get("/roles", response_model=List[RoleRead])
async def get_roles(session: AsyncSession = Depends(get_session)):
    return [RoleRead.model_validate(r) for r in await catalog_service.list_roles(session)]


@router.post("/roles", response_model=RoleRead, status_code=status.HTTP_201_CREATED)
async def create_role_endpoint(payload: RoleCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    role = await catalog_service.create_role(session, **payload.model_dump())
    return RoleRead.model_validate(role)


@router.put("/roles/{role_id}", response_model=RoleRead)
async def update_role_endpoint(role_id: int, payload: RoleCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    role = await catalog_service.update_role(session, role_id, **payload.model_dump())
    return RoleRead.model_validate(role)


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role_endpoint(role_id: int, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    if not await catalog_service.delete_role(session, role_id):
        raise HTTPException(status_code=404, detail="Role not found")


# Hazards
@router.get("/hazards", response_model=List[HazardRead])
async def get_hazards(session: AsyncSession = Depends(get_session)):
    return [_hazard_read(h) for h in await catalog_service.list_hazards(session)]


@router.post("/hazards", response_model=HazardRead, status_code=status.HTTP_201_CREATED)
async def create_hazard_endpoint(payload: HazardCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    hazard = await catalog_service.create_hazard(session, **payload.model_dump())
    return _hazard_read(hazard)


@router.post("/hazards/packs", response_model=List[HazardRead])
async def import_hazard_pack_endpoint(payload: PackImport, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return [_hazard_read(h) for h in await catalog_service.import_hazard_pack(session, payload.kind)]


@router.get("/hazards/{hazard_id}/controls", response_model=HazardControlsRead)
async def get_hazard_controls_endpoint(hazard_id: int, session: AsyncSession = Depends(get_session)):
    data = await catalog_service.get_hazard_controls(session, hazard_id)
    return HazardControlsRead(
        mapped=[HazardControlRead.model_validate(m) for m in data["mapped"]],
        available=[ControlRead.model_validate(c) for c in data["available"]],
        all_count=data["all_count"],
    )


@router.post("/hazards/{hazard_id}/controls", response_model=HazardControlRead, status_code=status.HTTP_201_CREATED)
async def add_hazard_control_endpoint(
    hazard_id: int,
    payload: HazardControlCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    row = await catalog_service.add_hazard_control(session, hazard_id, **payload.model_dump())
    return _mapping_read(row)


@router.delete("/hazards/{hazard_id}/controls/{control_id}", response_model=HazardControlRead)
async def remove_hazard_control_endpoint(
    hazard_id: int,
    control_id: int,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    row = await catalog_service.remove_hazard_control(session, hazard_id=hazard_id, control_id=control_id)
    return _mapping_read(row)


@router.delete("/hazard-controls/{mapping_id}", response_model=HazardControlRead)
async def remove_mapping_endpoint(mapping_id: int, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    row = await catalog_service.remove_hazard_control(session, mapping_id=mapping_id)
    return _mapping_read(row)


# Controls
@router.get("/controls", response_model=List[ControlRead])
async def get_controls(session: AsyncSession = Depends(get_session)):
    return [ControlRead.model_validate(c) for c in await catalog_service.list_controls(session)]


@router.post("/controls", response_model=ControlRead, status_code=status.HTTP_201_CREATED)
async def create_control_endpoint(payload: ControlCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    control = await catalog_service.create_control(session, payload.model_dump())
    return ControlRead.model_validate(control)


@router.put("/controls/{control_id}", response_model=ControlRead)
async def update_control_endpoint(
    control_id: int,
    payload: ControlUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    control = await catalog_service.update_control(session, control_id, payload.model_dump(exclude_unset=True))
    if not control:
        raise HTTPException(status_code=404, detail="Control not found")
    return ControlRead.model_validate(control)


@router.delete("/controls/{control_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_control_endpoint(control_id: int, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    if not await catalog_service.delete_control(session, control_id):
        raise HTTPException(status_code=404, detail="Control not found")


@router.post("/controls/packs", response_model=List[ControlRead])
async def import_control_pack_endpoint(payload: PackImport, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return [ControlRead.model_validate(c) for c in await catalog_service.import_control_pack(session, payload.kind)]
