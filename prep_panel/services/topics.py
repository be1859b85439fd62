# prep_panel/services/topics.py
"""
Topic orchestration: default topics, document-driven topic proposals and
ad-hoc custom topics.

Batches run one topic at a time. A failure on one topic is recorded on its
TopicOutcome and the loop moves on; single-topic operations let errors
propagate to the handler.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prep_panel.errors import (
    InvalidRequestError, NotFoundError, ParseError, PersistenceError, PrepPanelError, TopicExistsError,
)
from prep_panel.llm_client import chat_completion, parse_ai_response
from prep_panel.models import Topic, TopicContentVersion
from prep_panel.schemas import TopicProposal, TopicRead
from prep_panel.services.content import (
    generate_topic_content, normalize_content, save_content_version, topic_ids_with_content,
)
from prep_panel.services.prompts import build_topic_proposal_messages
from prep_panel.settings.config import settings
from prep_panel.utils import slugify

logger = logging.getLogger(__name__)

DEFAULT_TOPICS: List[TopicProposal] = [
    TopicProposal(title="Introduction & Summary", slug="introduction-summary",
                  category="Behavioral", icon_name="user", color="blue", sort_order=1),
    TopicProposal(title="Recent Projects & Experience", slug="recent-projects-experience",
                  category="Projects", icon_name="target", color="green", sort_order=2),
    TopicProposal(title="Technical Skills & Technologies", slug="technical-skills-technologies",
                  category="Technical", icon_name="code", color="purple", sort_order=3),
    TopicProposal(title="Problem-Solving & Troubleshooting", slug="problem-solving-troubleshooting",
                  category="Technical", icon_name="settings", color="orange", sort_order=4),
]

# category -> (icon_name, color)
CATEGORY_STYLES = {
    "Technical": ("code", "purple"),
    "Behavioral": ("user", "blue"),
    "Projects": ("target", "green"),
    "Architecture": ("server", "indigo"),
    "Leadership": ("users", "orange"),
}
DEFAULT_STYLE = ("brain", "pink")


@dataclass
class TopicOutcome:
    title: str
    slug: Optional[str] = None
    topic: Optional[TopicRead] = None
    created: bool = False
    content_generated: bool = False
    error: Optional[str] = None


@dataclass
class BatchSummary:
    outcomes: List[TopicOutcome] = field(default_factory=list)
    already_initialized: bool = False

    @property
    def topics_created(self) -> int:
        return sum(1 for o in self.outcomes if o.created)

    @property
    def topics(self) -> List[TopicRead]:
        return [o.topic for o in self.outcomes if o.topic is not None]

    @property
    def failures(self) -> List[TopicOutcome]:
        return [o for o in self.outcomes if o.error]


# ---------- lookups ----------

async def get_owned_topic(db: AsyncSession, owner_id: int, topic_id: int) -> Topic:
    topic = (
        await db.execute(select(Topic).where(Topic.id == topic_id, Topic.user_id == owner_id))
    ).scalars().first()
    if not topic:
        raise NotFoundError("Topic not found")
    return topic


async def find_topic_by_slug(db: AsyncSession, owner_id: int, slug: str) -> Optional[Topic]:
    return (
        await db.execute(select(Topic).where(Topic.user_id == owner_id, Topic.slug == slug))
    ).scalars().first()


async def list_topics(db: AsyncSession, owner_id: int) -> List[TopicRead]:
    rows = (
        await db.execute(select(Topic).where(Topic.user_id == owner_id).order_by(Topic.sort_order, Topic.id))
    ).scalars().all()
    with_content = await topic_ids_with_content(db, [t.id for t in rows])
    out = []
    for t in rows:
        item = TopicRead.model_validate(t)
        item.has_content = t.id in with_content
        out.append(item)
    return out


# ---------- creation ----------

async def ensure_topic(
    db: AsyncSession,
    owner_id: int,
    proposal: TopicProposal,
    *,
    default_sort: int = 0,
) -> Tuple[Topic, bool]:
    """Return (topic, created). An existing (owner, slug) row is reused, never duplicated."""
    slug = slugify(proposal.slug or "") or slugify(proposal.title)
    if not slug:
        raise InvalidRequestError(f"Cannot derive a slug from title {proposal.title!r}")

    existing = await find_topic_by_slug(db, owner_id, slug)
    if existing:
        logger.info("Topic %s already exists for user %s, skipping creation", slug, owner_id)
        return existing, False

    topic = Topic(
        user_id=owner_id,
        title=proposal.title.strip(),
        slug=slug,
        category=proposal.category,
        icon_name=proposal.icon_name,
        color=proposal.color,
        sort_order=proposal.sort_order or default_sort,
    )
    db.add(topic)
    try:
        await db.commit()
    except IntegrityError:
        # lost a race against a concurrent insert of the same slug
        await db.rollback()
        existing = await find_topic_by_slug(db, owner_id, slug)
        if existing:
            return existing, False
        raise PersistenceError(f"Failed to create topic {slug}")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Error creating topic %s", slug)
        raise PersistenceError(f"Failed to create topic {slug}") from e
    return topic, True


async def _attach_initial_content(
    db: AsyncSession,
    topic: Topic,
    owner_id: int,
    proposal: TopicProposal,
    source_notes: str,
) -> TopicContentVersion:
    if proposal.has_content:
        content = normalize_content(
            {
                "key_points": proposal.key_points,
                "script": proposal.speaking_script,
                "cross_questions": proposal.cross_questions,
            },
            topic.title,
        )
        return await save_content_version(
            db, topic, owner_id, source_notes, content,
            meta={"auto_generated": True, "model": settings.POWERFUL_MODEL},
        )
    return await generate_topic_content(db, topic, owner_id, source_notes, model=settings.EFFICIENT_MODEL)


async def _process_proposal(
    db: AsyncSession,
    owner_id: int,
    item: Any,
    position: int,
    *,
    source_notes: Optional[str],
) -> TopicOutcome:
    title = str(item.get("title") or "") if isinstance(item, dict) else ""
    outcome = TopicOutcome(title=title)
    try:
        proposal = item if isinstance(item, TopicProposal) else TopicProposal.model_validate(item)
        outcome.title = proposal.title
        topic, created = await ensure_topic(db, owner_id, proposal, default_sort=position)
    except (ValidationError, PrepPanelError) as e:
        logger.warning("Skipping topic #%d (%r): %s", position, title, e)
        outcome.error = str(e)
        return outcome
    except Exception as e:
        logger.exception("Unexpected error resolving topic #%d (%r)", position, title)
        outcome.error = str(e) or type(e).__name__
        return outcome

    # snapshot now: a later rollback expires ORM instances
    outcome.slug = topic.slug
    outcome.created = created
    outcome.topic = TopicRead.model_validate(topic)

    if source_notes is None:
        return outcome

    try:
        if outcome.topic.id in await topic_ids_with_content(db, [outcome.topic.id]):
            # regeneration must be requested explicitly
            outcome.topic.has_content = True
            return outcome
        await _attach_initial_content(db, topic, owner_id, proposal, source_notes)
    except PrepPanelError as e:
        logger.error("Content generation failed for topic %s: %s", outcome.slug, e)
        outcome.error = str(e)
        return outcome
    except Exception as e:
        logger.exception("Unexpected error generating content for topic %s", outcome.slug)
        outcome.error = str(e) or type(e).__name__
        return outcome

    outcome.content_generated = True
    outcome.topic.has_content = True
    return outcome


async def create_default_topics(db: AsyncSession, owner_id: int) -> BatchSummary:
    """Create the core topic structures (no model calls). No-op if the user has any topic."""
    existing = (await db.execute(select(Topic.id).where(Topic.user_id == owner_id).limit(1))).first()
    if existing:
        return BatchSummary(already_initialized=True)

    summary = BatchSummary()
    for position, proposal in enumerate(DEFAULT_TOPICS, start=1):
        summary.outcomes.append(await _process_proposal(db, owner_id, proposal, position, source_notes=None))
    logger.info("Created %d default topics for user %s", summary.topics_created, owner_id)
    return summary


async def propose_topics(documents_text: str, *, include_content: bool = False) -> List[Any]:
    messages = build_topic_proposal_messages(documents_text, include_content=include_content)
    raw = await chat_completion(
        messages, model=settings.POWERFUL_MODEL, max_tokens=4000 if include_content else 3000
    )
    logger.debug("Raw model response for document analysis: %s", raw)

    data = parse_ai_response(raw, "document analysis")
    topics = data.get("topics") if isinstance(data, dict) else None
    if not isinstance(topics, list):
        raise ParseError("Invalid topics format from AI", raw_text=raw)
    return topics


async def create_topics_from_documents(
    db: AsyncSession,
    owner_id: int,
    documents_text: str,
    *,
    include_content: bool = False,
) -> BatchSummary:
    """One proposal call, then per topic: reuse-or-create, and attach content if it has none."""
    proposals = await propose_topics(documents_text, include_content=include_content)
    logger.info("Model proposed %d topics for user %s", len(proposals), owner_id)

    summary = BatchSummary()
    for position, item in enumerate(proposals, start=1):
        summary.outcomes.append(
            await _process_proposal(db, owner_id, item, position, source_notes=documents_text)
        )
    logger.info(
        "Document analysis for user %s: %d created, %d failed",
        owner_id, summary.topics_created, len(summary.failures),
    )
    return summary


async def next_sort_order(db: AsyncSession, owner_id: int) -> int:
    current = (
        await db.execute(select(func.max(Topic.sort_order)).where(Topic.user_id == owner_id))
    ).scalar()
    return int(current or 0) + 1


async def create_custom_topic(
    db: AsyncSession,
    owner_id: int,
    title: str,
    category: str,
    source_notes: str,
) -> Tuple[Topic, TopicContentVersion]:
    slug = slugify(title)
    if slug and await find_topic_by_slug(db, owner_id, slug):
        raise TopicExistsError(f"A topic with slug {slug!r} already exists")

    icon, color = CATEGORY_STYLES.get(category, DEFAULT_STYLE)
    proposal = TopicProposal(
        title=title, slug=slug, category=category, icon_name=icon, color=color,
        sort_order=await next_sort_order(db, owner_id),
    )
    topic, created = await ensure_topic(db, owner_id, proposal)
    if not created:
        raise TopicExistsError(f"A topic with slug {topic.slug!r} already exists")

    version = await generate_topic_content(
        db, topic, owner_id, source_notes,
        category=category, model=settings.POWERFUL_MODEL, meta={"custom": True},
    )
    return topic, version
