from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi_users import schemas as fu_schemas
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =========================
# USER SCHEMAS
# =========================
class UserRead(fu_schemas.BaseUser[int]):
    full_name: Optional[str] = None


class UserCreate(fu_schemas.BaseUserCreate):
    full_name: Optional[str] = None


class UserUpdate(fu_schemas.BaseUserUpdate):
    full_name: Optional[str] = None


# =========================
# CONTENT SCHEMAS
# =========================
class CrossQuestion(BaseModel):
    """The single stored shape of a follow-up question; ``answer`` is optional."""
    question: str
    answer: Optional[str] = None


class GeneratedContent(BaseModel):
    bullets: List[str] = []
    script: str = ""
    cross_questions: List[CrossQuestion] = []


class ContentVersionRead(BaseModel):
    id: int
    topic_id: int
    source_notes: Optional[str] = None
    bullets: List[str] = []
    script: str = ""
    cross_questions: List[CrossQuestion] = []
    meta: Dict[str, Any] = {}
    is_favorite: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =========================
# TOPIC SCHEMAS
# =========================
class TopicRead(BaseModel):
    id: int
    title: str
    slug: str
    category: Optional[str] = None
    icon_name: Optional[str] = None
    color: Optional[str] = None
    sort_order: int = 0
    has_content: bool = False

    model_config = ConfigDict(from_attributes=True)


class TopicProposal(BaseModel):
    """One topic definition, either from the defaults or proposed by the model."""
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    slug: Optional[str] = None
    category: str = "Technical"
    icon_name: str = "code"
    color: str = "blue"
    sort_order: int = 0
    # optional pre-generated content
    key_points: Optional[List[Any]] = None
    speaking_script: Optional[str] = None
    cross_questions: Optional[List[Any]] = None

    # models sometimes send explicit nulls; treat them as "not given"
    @field_validator("category", "icon_name", "color", "sort_order", mode="before")
    @classmethod
    def _null_means_default(cls, v, info):
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @property
    def has_content(self) -> bool:
        return bool(self.key_points or self.speaking_script or self.cross_questions)


class TopicFailure(BaseModel):
    title: str
    slug: Optional[str] = None
    error: str


# --- request bodies (camelCase aliases match the dashboard client) ---
class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerateTopicContentRequest(_Request):
    topic_title: Optional[str] = Field(default=None, alias="topicTitle")
    source_notes: Optional[str] = Field(default=None, alias="sourceNotes")


class CustomTopicRequest(_Request):
    title: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    source_notes: Optional[str] = Field(default=None, alias="sourceNotes")


class AnalyzeDocumentsRequest(_Request):
    content: Optional[str] = None
    session_id: Optional[int] = Field(default=None, alias="sessionId")
    include_content: bool = Field(default=False, alias="includeContent")


class ContentEditRequest(_Request):
    bullets: List[str] = []
    script: str = ""
    cross_questions: List[Any] = Field(default_factory=list, alias="crossQuestions")
    source_notes: Optional[str] = Field(default=None, alias="sourceNotes")


class SetCurrentVersionRequest(_Request):
    version_id: int = Field(..., alias="versionId")


# =========================
# DOCUMENT SCHEMAS
# =========================
DocumentType = Literal["resume", "job_description", "supporting_document"]


class DocumentCreate(_Request):
    name: str = Field(..., min_length=1)
    type: DocumentType
    content_text: str = Field(default="", alias="contentText")
    metadata: Dict[str, Any] = {}
    session_id: Optional[int] = Field(default=None, alias="sessionId")


class DocumentRead(BaseModel):
    id: int
    name: str
    type: str
    content_text: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DocumentSessionCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class DocumentSessionRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
