from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Text, DateTime, func,
    Table, UniqueConstraint, JSON,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB
from fastapi_users.db import SQLAlchemyBaseUserTable

from .database import Base

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------
# USER MODEL
# ---------------------------
class User(SQLAlchemyBaseUserTable[int], Base):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(128), nullable=True)

    topics = relationship("Topic", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)


# ---------------------------
# TOPICS
# ---------------------------
class Topic(Base):
    __tablename__ = "topics"
    __table_args__ = (UniqueConstraint("user_id", "slug", name="uq_topics_user_slug"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(Text, nullable=False)
    slug = Column(String(200), nullable=False)       # derived once from title, never rewritten
    category = Column(String(64), default="Technical")
    icon_name = Column(String(64), default="code")
    color = Column(String(32), default="blue")
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    user = relationship("User", back_populates="topics")
    versions = relationship(
        "TopicContentVersion",
        back_populates="topic",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TopicContentVersion.id.desc()",
    )

    def __repr__(self):
        return f"<Topic {self.slug}>"


class TopicContentVersion(Base):
    """One immutable generated-content snapshot. Regeneration inserts a new row."""
    __tablename__ = "topic_content_versions"

    id = Column(Integer, primary_key=True)
    topic_id = Column(Integer, ForeignKey("topics.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    source_notes = Column(Text, nullable=True)
    bullets = Column(JSONType, default=list, nullable=False)          # list[str]
    script = Column(Text, default="", nullable=False)
    cross_questions = Column(JSONType, default=list, nullable=False)  # list[{"question", "answer"}]
    meta = Column(JSONType, default=dict, nullable=False)
    is_favorite = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    topic = relationship("Topic", back_populates="versions")


class TopicCurrentVersion(Base):
    __tablename__ = "topic_current_version"

    topic_id = Column(Integer, ForeignKey("topics.id", ondelete="CASCADE"), primary_key=True)
    version_id = Column(Integer, ForeignKey("topic_content_versions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    version = relationship("TopicContentVersion", lazy="joined")


# ---------------------------
# DOCUMENTS (source material)
# ---------------------------
session_documents = Table(
    "session_documents",
    Base.metadata,
    Column("session_id", ForeignKey("document_sessions.id", ondelete="CASCADE"), primary_key=True),
    Column("document_id", ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True),
)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False, index=True)  # resume|job_description|supporting_document
    content_text = Column(Text, nullable=True)
    metadata_json = Column("metadata", JSONType, default=dict, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    sessions = relationship("DocumentSession", secondary=session_documents, back_populates="documents")


class DocumentSession(Base):
    __tablename__ = "document_sessions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    documents = relationship("Document", secondary=session_documents, back_populates="sessions")
