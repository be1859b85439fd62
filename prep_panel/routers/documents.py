from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prep_panel.database import get_db
from prep_panel.models import User
from prep_panel.schemas import DocumentCreate, DocumentRead, DocumentSessionCreate, DocumentSessionRead
from prep_panel.services import documents as svc
from prep_panel.utils import require_authenticated_user

router = APIRouter(prefix="/api", tags=["documents"])


@router.post("/documents")
async def upload_document(
    payload: DocumentCreate,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    doc = await svc.create_document(db, user.id, payload)
    ok, reason = svc.validate_document_content(doc.content_text)
    return {
        "success": True,
        "document": DocumentRead.model_validate(doc).model_dump(mode="json"),
        "isValid": ok,
        "validationError": reason,
    }


@router.get("/documents")
async def get_documents(
    session_id: Optional[int] = Query(default=None, alias="sessionId"),
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    docs = await svc.list_documents(db, user.id, session_id=session_id)
    return {"success": True, "documents": [DocumentRead.model_validate(d).model_dump(mode="json") for d in docs]}


@router.delete("/documents/{document_id}")
async def remove_document(
    document_id: int,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    await svc.delete_document(db, user.id, document_id)
    return {"success": True, "message": "Document deleted"}


@router.post("/document-sessions")
async def create_document_session(
    payload: DocumentSessionCreate,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    s = await svc.create_session(db, user.id, payload)
    return {"success": True, "session": DocumentSessionRead.model_validate(s).model_dump(mode="json")}


@router.get("/document-sessions")
async def get_document_sessions(
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    sessions = await svc.list_sessions(db, user.id)
    return {
        "success": True,
        "sessions": [DocumentSessionRead.model_validate(s).model_dump(mode="json") for s in sessions],
    }
