# prep_panel/services/content.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prep_panel.errors import NotFoundError, ParseError, PersistenceError
from prep_panel.llm_client import chat_completion, parse_ai_response
from prep_panel.models import Topic, TopicContentVersion, TopicCurrentVersion
from prep_panel.schemas import CrossQuestion, GeneratedContent
from prep_panel.services.prompts import build_topic_content_messages
from prep_panel.settings.config import settings

logger = logging.getLogger(__name__)

FALLBACK_QUESTION_TEMPLATES = (
    "Can you elaborate on your experience with {t}?",
    "What challenges did you face when working on {t}?",
    "How did you measure success in your {t} projects?",
    "What would you do differently if you had to approach {t} again?",
)


# ---------- normalisation ----------

def fallback_cross_questions(topic_title: str) -> List[CrossQuestion]:
    t = (topic_title or "").strip().lower()
    return [CrossQuestion(question=tpl.format(t=t)) for tpl in FALLBACK_QUESTION_TEMPLATES]


def _cross_question(item: Any) -> Optional[CrossQuestion]:
    """Accept a plain string, {question, answer} or the legacy {q, a} pair."""
    if isinstance(item, str):
        q, a = item, None
    elif isinstance(item, dict):
        q = item.get("question", item.get("q"))
        a = item.get("answer", item.get("a"))
    else:
        return None
    if not isinstance(q, str) or not q.strip():
        return None
    if a is not None and not isinstance(a, str):
        a = str(a)
    return CrossQuestion(question=q.strip(), answer=(a.strip() or None) if a else None)


def normalize_cross_questions(items: Any) -> List[CrossQuestion]:
    if not isinstance(items, list):
        return []
    return [cq for cq in (_cross_question(i) for i in items) if cq is not None]


def _strings(items: Any) -> List[str]:
    if not isinstance(items, list):
        return []
    return [s.strip() for s in items if isinstance(s, str) and s.strip()]


def normalize_content(data: Dict[str, Any], topic_title: str) -> GeneratedContent:
    """
    Coerce a parsed model payload into GeneratedContent.

    Missing fields become []/"" except cross_questions: a version is never
    stored without follow-up questions, so four templated ones stand in.
    """
    bullets = data.get("key_points")
    if bullets is None:
        bullets = data.get("bullets")
    script = data.get("script")
    if script is None:
        script = data.get("speaking_script")

    questions = normalize_cross_questions(data.get("cross_questions"))
    if not questions:
        logger.info("No usable cross questions for %r; using fallback set", topic_title)
        questions = fallback_cross_questions(topic_title)

    return GeneratedContent(
        bullets=_strings(bullets),
        script=script.strip() if isinstance(script, str) else "",
        cross_questions=questions,
    )


# ---------- persistence ----------

def _upsert_pointer(db: AsyncSession, topic_id: int, version_id: int, owner_id: int):
    dialect = db.bind.dialect.name if db.bind is not None else ""
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    stmt = insert(TopicCurrentVersion).values(topic_id=topic_id, version_id=version_id, user_id=owner_id)
    return stmt.on_conflict_do_update(
        index_elements=["topic_id"],
        set_={"version_id": stmt.excluded.version_id, "user_id": stmt.excluded.user_id, "updated_at": func.now()},
    )


async def save_content_version(
    db: AsyncSession,
    topic: Topic,
    owner_id: int,
    source_notes: Optional[str],
    content: GeneratedContent,
    meta: Optional[Dict[str, Any]] = None,
) -> TopicContentVersion:
    """Insert a new version and repoint the topic at it, in one transaction."""
    # a rollback expires every instance; only plain locals are safe afterwards
    topic_id = topic.id
    if not content.cross_questions:
        content = content.model_copy(update={"cross_questions": fallback_cross_questions(topic.title)})

    version = TopicContentVersion(
        topic_id=topic_id,
        user_id=owner_id,
        source_notes=source_notes,
        bullets=list(content.bullets),
        script=content.script,
        cross_questions=[cq.model_dump() for cq in content.cross_questions],
        meta=dict(meta or {}),
    )
    try:
        db.add(version)
        await db.flush()
        await db.execute(_upsert_pointer(db, topic_id, version.id, owner_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to save content version for topic %s", topic_id)
        raise PersistenceError(f"Failed to save content for topic {topic_id}") from e

    await db.refresh(version)
    logger.info("Topic %s now points at version %s", topic_id, version.id)
    return version


async def set_current_version(db: AsyncSession, topic: Topic, owner_id: int, version_id: int) -> TopicContentVersion:
    topic_id = topic.id
    version = (
        await db.execute(
            select(TopicContentVersion).where(
                TopicContentVersion.id == version_id,
                TopicContentVersion.user_id == owner_id,
            )
        )
    ).scalars().first()
    # the pointer may only reference a version of the same topic
    if not version or version.topic_id != topic_id:
        raise NotFoundError("Version not found for this topic")
    try:
        await db.execute(_upsert_pointer(db, topic_id, version_id, owner_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to repoint topic %s at version %s", topic_id, version_id)
        raise PersistenceError(f"Failed to update current version for topic {topic_id}") from e
    return version


async def get_current_version(db: AsyncSession, topic_id: int, owner_id: int) -> Optional[TopicContentVersion]:
    pointer = (
        await db.execute(
            select(TopicCurrentVersion).where(
                TopicCurrentVersion.topic_id == topic_id,
                TopicCurrentVersion.user_id == owner_id,
            )
            # the pointer is rewritten with Core upserts; don't trust the identity map
            .execution_options(populate_existing=True)
        )
    ).scalars().first()
    return pointer.version if pointer else None


async def topic_ids_with_content(db: AsyncSession, topic_ids: Iterable[int]) -> set[int]:
    ids = list(topic_ids)
    if not ids:
        return set()
    rows = await db.execute(select(TopicCurrentVersion.topic_id).where(TopicCurrentVersion.topic_id.in_(ids)))
    return set(rows.scalars().all())


async def list_versions(db: AsyncSession, topic_id: int, owner_id: int) -> List[TopicContentVersion]:
    rows = await db.execute(
        select(TopicContentVersion)
        .where(TopicContentVersion.topic_id == topic_id, TopicContentVersion.user_id == owner_id)
        .order_by(TopicContentVersion.id.desc())
    )
    return list(rows.scalars().all())


# ---------- single-topic pipeline ----------

async def generate_topic_content(
    db: AsyncSession,
    topic: Topic,
    owner_id: int,
    source_notes: str,
    *,
    topic_title: Optional[str] = None,
    category: Optional[str] = None,
    model: Optional[str] = None,
    max_tokens: int = 2000,
    meta: Optional[Dict[str, Any]] = None,
    stored_notes: Optional[str] = None,
) -> TopicContentVersion:
    """
    Prompt -> model -> parse -> normalise -> persist. Errors propagate.

    The prompt always sees ``source_notes`` as given; ``stored_notes`` (when set)
    is what the version records instead.
    """
    title = topic_title or topic.title
    model = model or settings.EFFICIENT_MODEL
    messages = build_topic_content_messages(title, source_notes, category=category)

    raw = await chat_completion(messages, model=model, max_tokens=max_tokens)
    logger.debug("Raw model response for topic %s: %s", topic.id, raw)

    data = parse_ai_response(raw, "topic content generation")
    if not isinstance(data, dict):
        raise ParseError("Expected a JSON object for topic content", raw_text=raw)

    content = normalize_content(data, title)
    return await save_content_version(
        db, topic, owner_id, stored_notes if stored_notes is not None else source_notes, content,
        meta={"generated": True, "model": model, **(meta or {})},
    )
