from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prep_panel.database import get_db
from prep_panel.errors import InvalidRequestError
from prep_panel.models import User
from prep_panel.schemas import (
    AnalyzeDocumentsRequest,
    ContentEditRequest,
    ContentVersionRead,
    CustomTopicRequest,
    GeneratedContent,
    GenerateTopicContentRequest,
    SetCurrentVersionRequest,
    TopicFailure,
    TopicRead,
)
from prep_panel.services.content import (
    generate_topic_content,
    get_current_version,
    list_versions,
    normalize_content,
    save_content_version,
    set_current_version,
)
from prep_panel.services.documents import session_documents_text
from prep_panel.services.topics import (
    BatchSummary,
    create_custom_topic,
    create_default_topics,
    create_topics_from_documents,
    get_owned_topic,
    list_topics,
)
from prep_panel.settings.config import settings
from prep_panel.utils import require_authenticated_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/topics", tags=["topics"])

DEFAULT_SOURCE_NOTES = "Generate content for this interview preparation topic."
CUSTOM_SOURCE_NOTES = "Custom topic for interview preparation"


def _version_body(version) -> dict:
    return ContentVersionRead.model_validate(version).model_dump(mode="json")


def _batch_body(summary: BatchSummary) -> dict:
    return {
        "success": True,
        "topicsCreated": summary.topics_created,
        "topics": [t.model_dump() for t in summary.topics],
        "failed": [
            TopicFailure(title=o.title, slug=o.slug, error=o.error).model_dump()
            for o in summary.failures
        ],
    }


@router.get("")
async def get_topics(
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    topics = await list_topics(db, user.id)
    return {"success": True, "topics": [t.model_dump() for t in topics]}


@router.post("/defaults")
async def create_defaults(
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    summary = await create_default_topics(db, user.id)
    body = _batch_body(summary)
    if summary.already_initialized:
        body["message"] = "Topics already exist"
    else:
        body["message"] = f"Created {summary.topics_created} default topics"
    return body


@router.post("/analyze-documents")
async def analyze_documents(
    payload: AnalyzeDocumentsRequest,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    if payload.session_id is not None:
        documents_text = await session_documents_text(db, user.id, payload.session_id)
    elif payload.content and payload.content.strip():
        documents_text = payload.content
    else:
        raise InvalidRequestError("Provide document content or a sessionId")

    summary = await create_topics_from_documents(
        db, user.id, documents_text, include_content=payload.include_content
    )
    body = _batch_body(summary)
    body["sessionId"] = payload.session_id
    body["message"] = f"Created {summary.topics_created} topics from documents"
    return body


@router.post("/custom")
async def create_custom(
    payload: CustomTopicRequest,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    topic, version = await create_custom_topic(
        db,
        user.id,
        payload.title.strip(),
        payload.category.strip(),
        payload.source_notes or CUSTOM_SOURCE_NOTES,
    )
    topic_body = TopicRead.model_validate(topic)
    topic_body.has_content = True
    return {
        "success": True,
        "message": "Custom topic created successfully",
        "topic": topic_body.model_dump(),
        "version": _version_body(version),
    }


@router.post("/{topic_id}/generate")
async def generate_content(
    topic_id: int,
    payload: GenerateTopicContentRequest,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    topic = await get_owned_topic(db, user.id, topic_id)
    version = await generate_topic_content(
        db,
        topic,
        user.id,
        payload.source_notes or "",
        topic_title=payload.topic_title,
        category=topic.category,
        model=settings.EFFICIENT_MODEL,
        stored_notes=payload.source_notes or DEFAULT_SOURCE_NOTES,
    )
    return {"success": True, "message": "Content generated successfully", "version": _version_body(version)}


@router.get("/{topic_id}/content")
async def get_content(
    topic_id: int,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_topic(db, user.id, topic_id)
    version = await get_current_version(db, topic_id, user.id)
    return {"success": True, "version": _version_body(version) if version else None}


@router.get("/{topic_id}/versions")
async def get_versions(
    topic_id: int,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_topic(db, user.id, topic_id)
    current = await get_current_version(db, topic_id, user.id)
    versions = await list_versions(db, topic_id, user.id)
    return {
        "success": True,
        "currentVersionId": current.id if current else None,
        "versions": [_version_body(v) for v in versions],
    }


@router.post("/{topic_id}/versions")
async def save_edited_content(
    topic_id: int,
    payload: ContentEditRequest,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    topic = await get_owned_topic(db, user.id, topic_id)
    content: GeneratedContent = normalize_content(
        {"bullets": payload.bullets, "script": payload.script, "cross_questions": payload.cross_questions},
        topic.title,
    )
    if payload.source_notes is not None:
        source_notes = payload.source_notes
    else:
        previous = await get_current_version(db, topic_id, user.id)
        source_notes = previous.source_notes if previous else None

    version = await save_content_version(db, topic, user.id, source_notes, content, meta={"edited": True})
    return {"success": True, "message": "Content saved", "version": _version_body(version)}


@router.put("/{topic_id}/current")
async def point_at_version(
    topic_id: int,
    payload: SetCurrentVersionRequest,
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    topic = await get_owned_topic(db, user.id, topic_id)
    version = await set_current_version(db, topic, user.id, payload.version_id)
    logger.info("User %s restored version %s of topic %s", user.id, version.id, topic.id)
    return {"success": True, "message": "Current version updated", "version": _version_body(version)}
