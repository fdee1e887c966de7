import logging
from typing import List, Optional, Dict, Any
from sqlalchemy import select, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from safeguard.core.exceptions import NotFoundError, SafeGuardError, ValidationError
from safeguard.models.client import Client, Site
from safeguard.models.control import Control
from safeguard.models.hazard import Hazard, HazardControl
from safeguard.models.required_control import RequiredControl
from safeguard.models.role import Role, WorkerRole
from safeguard.services.assignment_engine import AssignmentEngine
from safeguard.services.packs import CONTROL_PACKS, HAZARD_PACKS
from safeguard.services.status_rules import risk_label_to_score

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# Roles
async def list_roles(session: AsyncSession) -> List[Role]:
    result = await session.execute(select(Role).order_by(Role.name))
    return result.scalars().all()


async def create_role(session: AsyncSession, name: str, description: Optional[str] = None, activity_package: Optional[str] = None) -> Role:
    name = _clean(name)
    if not name:
        raise ValidationError("Role name is required")
    role = Role(name=name, description=_clean(description), activity_package=_clean(activity_package))
    session.add(role)
    await session.commit()
    await session.refresh(role)
    return role


async def update_role(session: AsyncSession, role_id: int, name: str, description: Optional[str] = None, activity_package: Optional[str] = None) -> Role:
    name = _clean(name)
    if not name:
        raise ValidationError("Role name is required")
    role = await session.get(Role, role_id)
    if not role:
        raise NotFoundError(f"Role {role_id} not found")
    role.name = name
    role.description = _clean(description)
    role.activity_package = _clean(activity_package)
    session.add(role)
    await session.commit()
    await session.refresh(role)
    return role


async def delete_role(session: AsyncSession, role_id: int) -> bool:
    role = await session.get(Role, role_id)
    if not role:
        return False
    in_use = (await session.execute(
        select(func.count()).select_from(WorkerRole).where(WorkerRole.role_id == role_id)
    )).scalar_one()
    if in_use:
        raise ValidationError(f"Role {role.name} is assigned to {in_use} worker role record(s)")
    await session.delete(role)
    await session.commit()
    return True


# Hazards
async def list_hazards(session: AsyncSession) -> List[Hazard]:
    result = await session.execute(select(Hazard).order_by(Hazard.created_at.desc(), Hazard.id.desc()))
    return result.scalars().all()


async def create_hazard(session: AsyncSession, code: str, name: str, category: str, description: Optional[str] = None, risk: Optional[str] = None) -> Hazard:
    code, name, category = _clean(code), _clean(name), _clean(category)
    if not code or not name or not category:
        raise ValidationError("Hazard code, name and category are required")
    score = risk_label_to_score(risk)
    # post-control risk starts equal to pre-control until controls are mapped
    hazard = Hazard(code=code, name=name, category=category, description=_clean(description),
                    pre_control_risk=score, post_control_risk=score)
    session.add(hazard)
    await session.commit()
    await session.refresh(hazard)
    return hazard


async def import_hazard_pack(session: AsyncSession, kind: str) -> List[Hazard]:
    if kind not in HAZARD_PACKS:
        raise ValidationError(f"Unknown hazard pack {kind!r}")
    seeds = HAZARD_PACKS[kind]
    out = []
    for seed in seeds:
        existing = (await session.execute(select(Hazard).where(Hazard.code == seed["code"]))).scalars().first()
        if existing:
            out.append(existing)
            continue
        score = risk_label_to_score(seed.get("risk"))
        hazard = Hazard(
            code=seed["code"], name=seed["name"], category=seed["category"],
            description=seed.get("description"), pre_control_risk=score, post_control_risk=score,
        )
        session.add(hazard)
        out.append(hazard)
    await session.commit()
    for hazard in out:
        await session.refresh(hazard)
    return out


# Controls
async def list_controls(session: AsyncSession) -> List[Control]:
    result = await session.execute(select(Control).order_by(Control.created_at.desc(), Control.id.desc()))
    return result.scalars().all()


async def create_control(session: AsyncSession, payload: Dict[str, Any]) -> Control:
    data = {
        "code": _clean(payload.get("code")),
        "title": _clean(payload.get("title")),
        "type": _clean(payload.get("type")) or "Document",
        "description": _clean(payload.get("description")),
        "reference": _clean(payload.get("reference")),
        "validity_days": _validity(payload.get("validity_days")),
    }
    if not data["code"] or not data["title"]:
        raise ValidationError("Code and Title are required")
    control = Control(**data)
    session.add(control)
    await session.commit()
    await session.refresh(control)
    return control


def _validity(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"validity_days must be a whole number of days, got {value!r}") from exc


async def update_control(session: AsyncSession, control_id: int, data: Dict[str, Any]) -> Optional[Control]:
    control = await session.get(Control, control_id)
    if not control:
        return None
    for key in ("code", "title", "type", "description", "reference"):
        if key in data and data[key] is not None:
            setattr(control, key, str(data[key]).strip())
    if "validity_days" in data:
        control.validity_days = _validity(data["validity_days"])
    session.add(control)
    await session.commit()
    await session.refresh(control)
    return control


async def delete_control(session: AsyncSession, control_id: int) -> bool:
    control = await session.get(Control, control_id)
    if not control:
        return False
    in_use = (await session.execute(
        select(func.count()).select_from(RequiredControl).where(RequiredControl.control_id == control_id)
    )).scalar_one()
    if in_use:
        raise ValidationError(f"Control {control.code} is required by {in_use} worker(s)")
    try:
        await session.execute(delete(HazardControl).where(HazardControl.control_id == control_id))
        await session.delete(control)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return True


async def import_control_pack(session: AsyncSession, kind: str) -> List[Control]:
    if kind not in CONTROL_PACKS:
        raise ValidationError(f"Unknown control pack {kind!r}")
    seeds = CONTROL_PACKS[kind]
    out = []
    for seed in seeds:
        existing = (await session.execute(select(Control).where(Control.code == seed["code"]))).scalars().first()
        if existing:
            out.append(existing)
            continue
        control = Control(**seed)
        session.add(control)
        out.append(control)
    await session.commit()
    for control in out:
        await session.refresh(control)
    return out


# Hazard <-> control mappings
async def get_hazard_controls(session: AsyncSession, hazard_id: int) -> Dict[str, Any]:
    mapped = (await session.execute(
        select(HazardControl)
        .where(HazardControl.hazard_id == hazard_id)
        .options(selectinload(HazardControl.control))
        .order_by(HazardControl.priority, HazardControl.id.desc())
    )).scalars().all()
    controls = (await session.execute(select(Control).order_by(Control.title))).scalars().all()
    mapped_ids = {m.control_id for m in mapped}
    available = [c for c in controls if c.id not in mapped_ids]
    return {"mapped": mapped, "available": available, "all_count": len(controls)}


async def _recompute_after_mapping_change(session: AsyncSession, hazard_id: int) -> None:
    try:
        await AssignmentEngine(session).recompute_by_hazard(hazard_id)
    except (SafeGuardError, SQLAlchemyError):
        # the mapping change is already committed; the next recompute picks it up
        logger.warning("Recompute after hazard control change failed", extra={"hazard_id": hazard_id}, exc_info=True)
        await session.rollback()


async def add_hazard_control(session: AsyncSession, hazard_id: int, control_id: int, is_critical: Optional[bool] = None, priority: Optional[int] = None) -> HazardControl:
    if not hazard_id or not control_id:
        raise ValidationError("hazard_id and control_id are required")
    if await session.get(Hazard, hazard_id) is None:
        raise NotFoundError(f"Hazard {hazard_id} not found")
    if await session.get(Control, control_id) is None:
        raise NotFoundError(f"Control {control_id} not found")

    row = (await session.execute(
        select(HazardControl).where(HazardControl.hazard_id == hazard_id, HazardControl.control_id == control_id)
    )).scalars().first()
    if row is None:
        row = HazardControl(
            hazard_id=hazard_id,
            control_id=control_id,
            is_critical=bool(is_critical),
            priority=priority if priority is not None else 0,
        )
    else:
        if is_critical is not None:
            row.is_critical = is_critical
        if priority is not None:
            row.priority = priority
    session.add(row)
    await session.commit()
    await session.refresh(row)

    await _recompute_after_mapping_change(session, hazard_id)
    await session.refresh(row)
    return row


async def remove_hazard_control(session: AsyncSession, mapping_id: Optional[int] = None, hazard_id: Optional[int] = None, control_id: Optional[int] = None) -> HazardControl:
    if mapping_id is not None:
        row = await session.get(HazardControl, mapping_id)
    elif hazard_id is not None and control_id is not None:
        row = (await session.execute(
            select(HazardControl).where(HazardControl.hazard_id == hazard_id, HazardControl.control_id == control_id)
        )).scalars().first()
    else:
        raise ValidationError("Must provide mapping id or hazard_id and control_id")
    if row is None:
        raise NotFoundError("Hazard control mapping not found")

    await session.delete(row)
    await session.commit()

    await _recompute_after_mapping_change(session, row.hazard_id)
    return row


# Clients & sites
async def list_clients(session: AsyncSession) -> List[Client]:
    result = await session.execute(select(Client).options(selectinload(Client.sites)).order_by(Client.created_at.desc(), Client.id.desc()))
    return result.scalars().all()


async def get_client(session: AsyncSession, client_id: int) -> Optional[Client]:
    result = await session.execute(select(Client).where(Client.id == client_id).options(selectinload(Client.sites)).execution_options(populate_existing=True))
    return result.scalars().first()


async def create_client(session: AsyncSession, name: str) -> Client:
    name = _clean(name)
    if not name:
        raise ValidationError("Client name is required")
    existing = (await session.execute(select(Client).where(Client.name == name))).scalars().first()
    if existing:
        return await get_client(session, existing.id)
    client = Client(name=name)
    session.add(client)
    await session.commit()
    return await get_client(session, client.id)


async def delete_client(session: AsyncSession, client_id: int) -> bool:
    client = await get_client(session, client_id)
    if not client:
        return False
    await session.delete(client)
    await session.commit()
    return True


async def create_site(session: AsyncSession, client_id: int, name: str) -> Site:
    name = _clean(name)
    if not client_id or not name:
        raise ValidationError("Client ID and site name are required")
    if await session.get(Client, client_id) is None:
        raise NotFoundError(f"Client {client_id} not found")
    site = Site(client_id=client_id, name=name)
    session.add(site)
    await session.commit()
    await session.refresh(site)
    return site


async def delete_site(session: AsyncSession, site_id: int) -> bool:
    site = await session.get(Site, site_id)
    if not site:
        return False
    await session.delete(site)
    await session.commit()
    return True
