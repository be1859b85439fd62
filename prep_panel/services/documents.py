# prep_panel/services/documents.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prep_panel.errors import InvalidRequestError, NotFoundError, PersistenceError
from prep_panel.models import Document, DocumentSession, session_documents
from prep_panel.schemas import DocumentCreate, DocumentSessionCreate

logger = logging.getLogger(__name__)

MIN_DOCUMENT_CHARS = 50
SHORT_DOCUMENT_CHARS = 200

# text that extraction tools leave behind instead of real content
PLACEHOLDER_KEYWORDS = (
    "note:",
    "requires integration",
    "error extracting",
    "no readable text",
    "corrupted",
    "advanced processing",
    "server-side processing",
)
MEANINGFUL_INDICATORS = (
    "experience", "skills", "education", "work", "project", "responsibility",
    "requirements", "qualifications", "role", "position", "company",
)


def validate_document_content(text: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Return (is_valid, reason). Short texts must at least look like a resume or job post."""
    if not text or not text.strip():
        return False, "Document content is empty"
    content = text.strip()
    if len(content) < MIN_DOCUMENT_CHARS:
        return False, "Document content is too short to be meaningful"
    low = content.lower()
    if any(k in low for k in PLACEHOLDER_KEYWORDS):
        return False, "Document contains placeholder text instead of actual content"
    if len(content) < SHORT_DOCUMENT_CHARS and not any(w in low for w in MEANINGFUL_INDICATORS):
        return False, "Document does not appear to contain meaningful professional content"
    return True, None


def build_document_summary(documents: Iterable[Document]) -> str:
    """Concatenate valid documents under '=== TYPE: name ===' headers; invalid ones are skipped."""
    sections = []
    for doc in documents:
        ok, reason = validate_document_content(doc.content_text)
        if not ok:
            logger.warning("Skipping document %s (%s): %s", doc.id, doc.name, reason)
            continue
        header = doc.type.replace("_", " ").upper()
        sections.append(f"=== {header}: {doc.name} ===\n{doc.content_text.strip()}")
    if not sections:
        return ""
    return "UPLOADED DOCUMENTS ANALYSIS:\n\n" + "\n\n".join(sections)


# ---------- sessions ----------

async def get_owned_session(db: AsyncSession, owner_id: int, session_id: int) -> DocumentSession:
    s = (
        await db.execute(
            select(DocumentSession).where(DocumentSession.id == session_id, DocumentSession.user_id == owner_id)
        )
    ).scalars().first()
    if not s:
        raise NotFoundError("Document session not found")
    return s


async def create_session(db: AsyncSession, owner_id: int, payload: DocumentSessionCreate) -> DocumentSession:
    s = DocumentSession(user_id=owner_id, name=payload.name.strip(), description=payload.description)
    db.add(s)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError("Failed to create document session") from e
    await db.refresh(s)
    return s


async def list_sessions(db: AsyncSession, owner_id: int) -> List[DocumentSession]:
    rows = await db.execute(
        select(DocumentSession)
        .where(DocumentSession.user_id == owner_id, DocumentSession.is_active.is_(True))
        .order_by(DocumentSession.created_at.desc(), DocumentSession.id.desc())
    )
    return list(rows.scalars().all())


# ---------- documents ----------

async def create_document(db: AsyncSession, owner_id: int, payload: DocumentCreate) -> Document:
    sessions = []
    if payload.session_id is not None:
        sessions.append(await get_owned_session(db, owner_id, payload.session_id))

    ok, reason = validate_document_content(payload.content_text)
    if not ok:
        # stored anyway; it is left out of topic analysis
        logger.warning("Document %r failed validation: %s", payload.name, reason)

    doc = Document(
        user_id=owner_id,
        name=payload.name.strip(),
        type=payload.type,
        content_text=payload.content_text,
        metadata_json=dict(payload.metadata or {}),
        sessions=sessions,
    )
    db.add(doc)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to store document %r", payload.name)
        raise PersistenceError("Failed to store document") from e
    await db.refresh(doc)
    return doc


async def list_documents(db: AsyncSession, owner_id: int, session_id: Optional[int] = None) -> List[Document]:
    stmt = select(Document).where(Document.user_id == owner_id, Document.is_active.is_(True))
    if session_id is not None:
        await get_owned_session(db, owner_id, session_id)
        stmt = stmt.join(session_documents, session_documents.c.document_id == Document.id).where(
            session_documents.c.session_id == session_id
        )
    rows = await db.execute(stmt.order_by(Document.id))
    return list(rows.scalars().all())


async def delete_document(db: AsyncSession, owner_id: int, document_id: int) -> None:
    doc = (
        await db.execute(select(Document).where(Document.id == document_id, Document.user_id == owner_id))
    ).scalars().first()
    if not doc:
        raise NotFoundError("Document not found")
    try:
        await db.execute(delete(session_documents).where(session_documents.c.document_id == doc.id))
        await db.execute(delete(Document).where(Document.id == doc.id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError("Failed to delete document") from e


async def session_documents_text(db: AsyncSession, owner_id: int, session_id: int) -> str:
    """The analysis text for every usable document in a session."""
    docs = await list_documents(db, owner_id, session_id=session_id)
    summary = build_document_summary(docs)
    if not summary:
        raise InvalidRequestError("No valid documents found in this session")
    return summary
