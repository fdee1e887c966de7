from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.database import get_session
from safeguard.core.security import get_current_user
from safeguard.schemas.catalog import ClientCreate, ClientRead, SiteCreate, SiteRead
from safeguard.services import catalog_service

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=List[ClientRead])
async def get_clients(session: AsyncSession = Depends(get_session)):
    return [ClientRead.model_validate(c) for c in await catalog_service.list_clients(session)]


@router.post("", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
async def create_client_endpoint(payload: ClientCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    client = await catalog_service.create_client(session, payload.name)
    return ClientRead.model_validate(client)


@router.get("/{client_id}", response_model=ClientRead)
async def get_client_endpoint(client_id: int, session: AsyncSession = Depends(get_session)):
    client = await catalog_service.get_client(session, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return ClientRead.model_validate(client)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client_endpoint(client_id: int, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    if not await catalog_service.delete_client(session, client_id):
        raise HTTPException(status_code=404, detail="Client not found")


@router.post("/{client_id}/sites", response_model=SiteRead, status_code=status.HTTP_201_CREATED)
async def create_site_endpoint(
    client_id: int,
    payload: SiteCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    site = await catalog_service.create_site(session, client_id, payload.name)
    return SiteRead.model_validate(site)


@router.delete("/{client_id}/sites/{site_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_site_endpoint(client_id: int, site_id: int, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    if not await catalog_service.delete_site(session, site_id):
        raise HTTPException(status_code=404, detail="Site not found")
