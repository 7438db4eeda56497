"""Survey editor state.

Holds a client-side draft of one survey: its presentation fields, ordered
sections (each with its own ordered questions) and the unsectioned
questions. The draft is owned by one editor instance; the backend only sees
it when `save()` sends the whole survey.
"""
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel

from survey_client.actions import InFlight
from survey_client.api import ApiClient
from survey_client.errors import ApiError, SurveyClientError
from survey_client.files import ImageUploader
from survey_client.ordering import OrderedItems
from survey_client.schemas import (
    PdfSettings,
    QuestionCreate,
    QuestionType,
    SectionCreate,
    Survey,
    SurveyCreate,
)

logger = logging.getLogger(__name__)


class QuestionDraft(BaseModel):
    id: str
    question_text: str = ""
    question_type: QuestionType = "likert"
    help_text: Optional[str] = None
    image_url: Optional[str] = None
    is_required: bool = True
    question_order: int = 0


class SectionDraft(BaseModel):
    id: str
    title: str = ""
    description: str = ""
    section_order: int = 0


# ------------------------
# Dirty-state detection
# ------------------------
@dataclass(frozen=True)
class QuestionProjection:
    text: str
    type: str
    help_text: str
    image_url: str
    required: bool
    order: int


@dataclass(frozen=True)
class SectionProjection:
    title: str
    description: str
    order: int
    questions: Tuple[QuestionProjection, ...]


@dataclass(frozen=True)
class EditorSnapshot:
    title: str
    description: str
    is_active: bool
    instructions: str
    header_image_url: str
    footer_text: str
    pdf_settings: Optional[PdfSettings]
    sections: Tuple[SectionProjection, ...]
    questions: Tuple[QuestionProjection, ...]


def _project(questions) -> Tuple[QuestionProjection, ...]:
    return tuple(
        QuestionProjection(
            q.question_text, q.question_type, q.help_text or "", q.image_url or "", q.is_required, q.question_order
        )
        for q in questions
    )


def snapshot_of_survey(survey: Survey) -> EditorSnapshot:
    sections = []
    for s in sorted(survey.sections, key=lambda s: s.section_order):
        qs = sorted(s.questions, key=lambda q: q.question_order)
        sections.append(SectionProjection(s.title, s.description or "", s.section_order, _project(qs)))
    return EditorSnapshot(
        title=survey.title,
        description=survey.description or "",
        is_active=survey.is_active,
        instructions=survey.instructions or "",
        header_image_url=survey.header_image_url or "",
        footer_text=survey.footer_text or "",
        pdf_settings=survey.pdf_settings,
        sections=tuple(sections),
        questions=_project(sorted(survey.questions, key=lambda q: q.question_order)),
    )


def is_dirty(current: EditorSnapshot, baseline: Optional[EditorSnapshot]) -> bool:
    """True when the draft differs from the last state loaded from the server.

    Without a baseline (nothing loaded yet) there is nothing to compare with,
    so the draft is not dirty.
    """
    if baseline is None:
        return False
    return current != baseline


# ------------------------
# Editor
# ------------------------
class SurveyEditor:
    """Draft of a new survey (no `survey_id`) or of an existing one."""

    def __init__(self, api: ApiClient, survey_id: Optional[str] = None, uploader: Optional[ImageUploader] = None):
        self.api = api
        self.survey_id = survey_id
        self.uploader = uploader or ImageUploader(api)

        self.title = ""
        self.description = ""
        self.is_active = True
        self.instructions = ""
        self.header_image_url = ""
        self.footer_text = ""
        self.pdf_settings: Optional[PdfSettings] = None
        self.sections: OrderedItems[SectionDraft] = OrderedItems("section_order")
        self.section_questions: Dict[str, OrderedItems[QuestionDraft]] = {}
        self.questions: OrderedItems[QuestionDraft] = OrderedItems("question_order")

        self.baseline: Optional[EditorSnapshot] = None
        self.loading = False
        self.not_found = False
        self.error: Optional[str] = None
        self.validation_errors: List[str] = []
        self.saving = InFlight("save")
        self.uploading = InFlight("upload")

    @property
    def is_new(self) -> bool:
        return self.survey_id is None

    # --- loading ---
    def load(self) -> None:
        """Fetch the survey and make it both the draft and the baseline."""
        if self.is_new:
            return
        self.loading = True
        self.error = None
        try:
            survey = self.api.get_survey(self.survey_id)
        except ApiError as exc:
            self.error = exc.message
            self.not_found = exc.is_not_found
            return
        finally:
            self.loading = False
        self._adopt(survey)

    def retry(self) -> None:
        if self.not_found:
            return
        self.load()

    def _adopt(self, survey: Survey) -> None:
        self.survey_id = survey.id
        self.title = survey.title
        self.description = survey.description or ""
        self.is_active = survey.is_active
        self.instructions = survey.instructions or ""
        self.header_image_url = survey.header_image_url or ""
        self.footer_text = survey.footer_text or ""
        self.pdf_settings = survey.pdf_settings

        self.sections = OrderedItems("section_order")
        self.section_questions = {}
        for s in sorted(survey.sections, key=lambda s: s.section_order):
            self.sections.append(SectionDraft(id=s.id, title=s.title, description=s.description or ""))
            self.section_questions[s.id] = OrderedItems(
                "question_order", [self._draft_of(q) for q in sorted(s.questions, key=lambda q: q.question_order)]
            )
        self.questions = OrderedItems(
            "question_order", [self._draft_of(q) for q in sorted(survey.questions, key=lambda q: q.question_order)]
        )
        self.baseline = snapshot_of_survey(survey)

    @staticmethod
    def _draft_of(q) -> QuestionDraft:
        return QuestionDraft(
            id=q.id,
            question_text=q.question_text,
            question_type=q.question_type,
            help_text=q.help_text,
            image_url=q.image_url,
            is_required=q.is_required,
            question_order=q.question_order,
        )

    # --- questions ---
    def question_list(self, section_id: Optional[str] = None) -> OrderedItems[QuestionDraft]:
        if section_id is None:
            return self.questions
        if section_id not in self.section_questions:
            raise KeyError(section_id)
        return self.section_questions[section_id]

    def _list_containing(self, question_id: str) -> OrderedItems[QuestionDraft]:
        for items in [self.questions, *self.section_questions.values()]:
            if items.get(question_id) is not None:
                return items
        raise KeyError(question_id)

    def all_questions(self) -> List[QuestionDraft]:
        out = []
        for section in self.sections:
            out.extend(self.section_questions[section.id])
        out.extend(self.questions)
        return out

    def add_question(self, section_id: Optional[str] = None, **fields) -> QuestionDraft:
        draft = QuestionDraft(id=f"new_{uuid.uuid4().hex}", **fields)
        return self.question_list(section_id).append(draft)

    def update_question(self, question_id: str, **fields) -> QuestionDraft:
        return self._list_containing(question_id).update(question_id, **fields)

    def remove_question(self, question_id: str) -> QuestionDraft:
        return self._list_containing(question_id).remove(question_id)

    def move_question(self, from_index: int, to_index: int, section_id: Optional[str] = None) -> None:
        self.question_list(section_id).move(from_index, to_index)

    def assign_question(self, question_id: str, section_id: Optional[str]) -> QuestionDraft:
        """Move a question to the end of another section (or the unsectioned list)."""
        target = self.question_list(section_id)
        source = self._list_containing(question_id)
        if source is target:
            return source.get(question_id)
        return target.append(source.remove(question_id))

    # --- sections ---
    def add_section(self, **fields) -> SectionDraft:
        section = self.sections.append(SectionDraft(id=f"section_{uuid.uuid4().hex}", **fields))
        self.section_questions[section.id] = OrderedItems("question_order")
        return section

    def update_section(self, section_id: str, **fields) -> SectionDraft:
        return self.sections.update(section_id, **fields)

    def remove_section(self, section_id: str) -> SectionDraft:
        """Remove a section; its questions move to the end of the unsectioned list."""
        removed = self.sections.remove(section_id)
        self.questions.extend(list(self.section_questions.pop(section_id)))
        return removed

    def move_section(self, from_index: int, to_index: int) -> None:
        self.sections.move(from_index, to_index)

    # --- images ---
    def attach_image(self, path: Union[str, Path], question_id: Optional[str] = None) -> Optional[str]:
        """Upload an image and use it for a question, or as the survey header."""
        with self.uploading.guard():
            self.error = None
            try:
                uploaded = self.uploader.upload(path)
            except SurveyClientError as exc:
                self.error = exc.message
                return None
        if question_id is None:
            self.header_image_url = uploaded.url
        else:
            self.update_question(question_id, image_url=uploaded.url)
        return uploaded.url

    # --- validation, dirty state, save ---
    def validate(self) -> List[str]:
        messages = []
        if not self.title.strip():
            messages.append("Title is required")
        questions = self.all_questions()
        if not questions:
            messages.append("Add at least one question")
        if any(not q.question_text.strip() for q in questions):
            messages.append("Every question needs text")
        if len(self.sections) and any(not s.title.strip() for s in self.sections):
            messages.append("Every section needs a title")
        return messages

    def snapshot(self) -> EditorSnapshot:
        sections = tuple(
            SectionProjection(s.title, s.description, s.section_order, _project(self.section_questions[s.id]))
            for s in self.sections
        )
        return EditorSnapshot(
            title=self.title,
            description=self.description,
            is_active=self.is_active,
            instructions=self.instructions,
            header_image_url=self.header_image_url,
            footer_text=self.footer_text,
            pdf_settings=self.pdf_settings,
            sections=sections,
            questions=_project(self.questions),
        )

    @property
    def has_changes(self) -> bool:
        return is_dirty(self.snapshot(), self.baseline)

    @property
    def can_save(self) -> bool:
        if self.saving.active:
            return False
        return self.is_new or self.has_changes

    def build_payload(self) -> SurveyCreate:
        def question_payload(items):
            return [
                QuestionCreate(
                    question_text=q.question_text,
                    question_type=q.question_type,
                    help_text=q.help_text,
                    image_url=q.image_url,
                    is_required=q.is_required,
                    question_order=i,
                )
                for i, q in enumerate(items)
            ]

        return SurveyCreate(
            title=self.title,
            description=self.description,
            instructions=self.instructions or None,
            header_image_url=self.header_image_url or None,
            footer_text=self.footer_text or None,
            pdf_settings=self.pdf_settings,
            is_active=self.is_active,
            sections=[
                SectionCreate(
                    title=s.title,
                    description=s.description or None,
                    section_order=i,
                    questions=question_payload(self.section_questions[s.id]),
                )
                for i, s in enumerate(self.sections)
            ],
            questions=question_payload(self.questions),
        )

    def save(self) -> Optional[Survey]:
        """Validate and send the draft; returns the saved survey, or None on failure.

        Validation failures never reach the network; they are left in
        `validation_errors` (all of them) and `error` (the first one).
        """
        self.validation_errors = self.validate()
        if self.validation_errors:
            self.error = self.validation_errors[0]
            return None
        with self.saving.guard():
            self.error = None
            payload = self.build_payload()
            try:
                if self.is_new:
                    saved = self.api.create_survey(payload)
                else:
                    saved = self.api.update_survey(self.survey_id, payload)
            except ApiError as exc:
                self.error = exc.message
                return None
        logger.info("Survey %s saved", saved.id)
        self._adopt(saved)
        return saved
