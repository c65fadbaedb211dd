"""API endpoints for Demobilization module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, AnyUser
from src.core.database import get_db
from src.modules.demob.models import DemobDocument
from src.modules.demob.schemas import DemobDocumentResponse, DemobDocumentUpdate, DemobRequest
from src.modules.demob.service import DemobService
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/demob", tags=["Demobilization"])


def _document_to_response(document: DemobDocument) -> DemobDocumentResponse:
    return DemobDocumentResponse(
        id=document.id,
        person_id=document.person_id,
        person_name=document.person.title if document.person else None,
        performed_by=document.performed_by,
        performed_by_email=document.performed_by_email,
        items_returned=document.items_returned or [],
        accesses_revoked=document.accesses_revoked or [],
        signed_document_url=document.signed_document_url,
        is_completed=document.is_completed,
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


@router.post(
    "",
    response_model=ApiResponse[DemobDocumentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def demobilize_person(
    data: DemobRequest,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Return a person's items, revoke their accesses and mark them inactive."""
    service = DemobService(db)
    document = await service.demobilize(data, current_user)
    return ApiResponse(message="Person demobilized", data=_document_to_response(document))


@router.get("/documents", response_model=ApiResponse[list[DemobDocumentResponse]])
async def list_demob_documents(
    current_user: AnyUser,
    person_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    service = DemobService(db)
    documents = await service.list_documents(person_id=person_id)
    return ApiResponse(data=[_document_to_response(d) for d in documents])


@router.get("/documents/{document_id}", response_model=ApiResponse[DemobDocumentResponse])
async def get_demob_document(
    document_id: int,
    current_user: AnyUser,
    db: AsyncSession = Depends(get_db),
):
    service = DemobService(db)
    document = await service.get_document(document_id)
    return ApiResponse(data=_document_to_response(document))


@router.patch("/documents/{document_id}", response_model=ApiResponse[DemobDocumentResponse])
async def update_demob_document(
    document_id: int,
    data: DemobDocumentUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = DemobService(db)
    document = await service.update_document(document_id, data, current_user.id)
    return ApiResponse(data=_document_to_response(document))
