import logging
from typing import List
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safeguard.core.database import get_session
from safeguard.core.exceptions import SafeGuardError, error_result
from safeguard.core.security import get_current_user
from safeguard.schemas.evidence import (
    BulkEvidenceCreate,
    BulkEvidenceResult,
    EvidenceCreate,
    StoredFileRead,
    TemporaryFixCreate,
    TemporaryFixResult,
)
from safeguard.schemas.workers import EvidenceRead
from safeguard.services import evidence_service
from safeguard.utils.file_utils import EvidenceFileStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/evidence", tags=["evidence"])


def get_file_store() -> EvidenceFileStore:
    return EvidenceFileStore()


@router.get("", response_model=List[EvidenceRead])
async def get_evidence(required_control_id: int, session: AsyncSession = Depends(get_session)):
    rows = await evidence_service.list_evidence(session, required_control_id)
    return [EvidenceRead.model_validate(ev) for ev in rows]


@router.post("", response_model=EvidenceRead, status_code=status.HTTP_201_CREATED)
async def add_evidence_endpoint(payload: EvidenceCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    evidence = await evidence_service.add_evidence(session, **payload.model_dump())
    return EvidenceRead.model_validate(evidence)


@router.post("/temporary-fix", response_model=TemporaryFixResult)
async def temporary_fix_endpoint(payload: TemporaryFixCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    try:
        evidence = await evidence_service.create_temporary_fix(
            session, payload.required_control_id, payload.notes, payload.valid_until
        )
    except (SafeGuardError, SQLAlchemyError) as exc:
        logger.warning("Failed to create temporary fix", extra={"required_control_id": payload.required_control_id}, exc_info=True)
        return TemporaryFixResult(**error_result(exc))
    return TemporaryFixResult(evidence_id=evidence.id)


@router.post("/bulk", response_model=BulkEvidenceResult, status_code=status.HTTP_201_CREATED)
async def bulk_evidence_endpoint(payload: BulkEvidenceCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    result = await evidence_service.bulk_add_evidence(session, **payload.model_dump())
    return BulkEvidenceResult(**result)


@router.post("/upload", response_model=StoredFileRead, status_code=status.HTTP_201_CREATED)
async def upload_evidence_file(
    file: UploadFile = File(...),
    store: EvidenceFileStore = Depends(get_file_store),
    user=Depends(get_current_user),
):
    """Store a file; the returned path and checksum are then attached with POST /evidence."""
    stored = await store.save(file)
    return StoredFileRead(path=stored.path, checksum=stored.checksum, size=stored.size, original_name=stored.original_name)
