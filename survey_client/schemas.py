# schemas.py
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

QuestionType = Literal["likert", "yesno", "numeric"]
QUESTION_TYPES = ("likert", "yesno", "numeric")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps from the backend as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Question(BaseModel):
    id: str
    question_text: str
    question_type: QuestionType
    help_text: Optional[str] = None
    image_url: Optional[str] = None
    is_required: bool = True
    question_order: int = 0
    section_id: Optional[str] = None
    created_at: Optional[datetime] = None


class Section(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    section_order: int = 0
    questions: List[Question] = []


class PdfSettings(BaseModel):
    page_size: str = "A4"
    orientation: Literal["portrait", "landscape"] = "portrait"
    include_instructions: bool = True
    include_help_text: bool = True


class Survey(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    header_image_url: Optional[str] = None
    footer_text: Optional[str] = None
    pdf_settings: Optional[PdfSettings] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sections: List[Section] = []
    questions: List[Question] = []

    def ordered_questions(self) -> List[Question]:
        """Questions in answering order: sections first, then unsectioned ones."""
        out = []
        for section in sorted(self.sections, key=lambda s: s.section_order):
            out.extend(sorted(section.questions, key=lambda q: q.question_order))
        out.extend(sorted(self.questions, key=lambda q: q.question_order))
        return out


class SurveyWithStats(Survey):
    total_responses: int = 0


# --- write payloads ---

class QuestionCreate(BaseModel):
    question_text: str
    question_type: QuestionType = "likert"
    help_text: Optional[str] = None
    image_url: Optional[str] = None
    is_required: bool = True
    question_order: int = 0


class SectionCreate(BaseModel):
    title: str
    description: Optional[str] = None
    section_order: int = 0
    questions: List[QuestionCreate] = []


class SurveyCreate(BaseModel):
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    header_image_url: Optional[str] = None
    footer_text: Optional[str] = None
    pdf_settings: Optional[PdfSettings] = None
    is_active: bool = True
    sections: List[SectionCreate] = []
    questions: List[QuestionCreate] = []


class QuestionResponseCreate(BaseModel):
    question_id: str
    response_value: str


class SurveyResponseCreate(BaseModel):
    survey_id: str
    respondent_id: Optional[str] = None
    invitation_token: Optional[str] = None
    responses: List[QuestionResponseCreate]


class ResponseSubmitted(BaseModel):
    message: str = ""
    response_id: str


# --- statistics ---

class QuestionStat(BaseModel):
    question_id: str
    question_text: str
    question_type: str
    total_responses: int = 0
    average_value: Optional[float] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    distribution: Dict[str, int] = {}


class SectionStat(BaseModel):
    section_id: str
    title: str
    questions: List[QuestionStat] = []


class SurveyStat(BaseModel):
    survey_id: str
    title: str
    total_responses: int = 0
    sections: List[SectionStat] = []
    questions: List[QuestionStat] = []


# --- invitations ---

class InvitationCreate(BaseModel):
    expires_in_hours: int = Field(..., gt=0)


class InvitationCreated(BaseModel):
    token: str
    share_url: str
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def coerce_utc(cls, value):
        return as_utc(value)


class Invitation(BaseModel):
    token: str
    survey_id: str
    expires_at: datetime
    is_active: bool = True
    is_expired: bool = False
    response_count: int = 0
    created_at: Optional[datetime] = None

    @field_validator("expires_at", "created_at")
    @classmethod
    def coerce_utc(cls, value):
        return as_utc(value)

    def expired_at(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_usable(self, now: datetime) -> bool:
        """Active and not yet expired; `is_expired` from the backend also counts."""
        return self.is_active and not self.is_expired and not self.expired_at(now)


class InvitationList(BaseModel):
    invitations: List[Invitation] = []


class InvitationValidation(BaseModel):
    valid: bool
    survey_id: Optional[str] = None
    reason: Optional[str] = None


class RespondentCheck(BaseModel):
    can_respond: bool


class UploadedFile(BaseModel):
    url: str
    filename: str
    content_type: Optional[str] = None
    size: Optional[int] = None
