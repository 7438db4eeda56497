"""Response collection flow for one survey.

The flow is gated twice. The invitation gate (only when the entry URL carried
a token) is terminal: an invalid or expired link ends the flow. The device
gate asks the backend whether this respondent id may still answer; a refusal
keeps the survey visible but disables submission.

Both gates run again right before submitting. The device re-check is not
atomic with the submission itself, so two racing submissions from one device
can both be recorded; only a unique (survey_id, respondent_id) constraint on
the backend would prevent that.
"""
import logging
from enum import Enum
from typing import Dict, List, Optional, Union

from survey_client.actions import InFlight
from survey_client.api import ApiClient
from survey_client.config import get_settings
from survey_client.errors import ApiError, InvalidAnswer
from survey_client.schemas import (
    InvitationValidation,
    Question,
    QuestionResponseCreate,
    ResponseSubmitted,
    Survey,
    SurveyResponseCreate,
)

logger = logging.getLogger(__name__)

LIKERT_VALUES = range(1, 6)
NUMERIC_VALUES = range(0, 11)

ALREADY_RESPONDED = "You have already answered this survey from this device"
MISSING_REQUIRED = "Please answer all required questions (*)"


class FlowState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    LOAD_FAILED = "load_failed"
    NOT_FOUND = "not_found"
    LINK_INVALID = "link_invalid"
    SUBMITTED = "submitted"


TERMINAL_STATES = {FlowState.NOT_FOUND, FlowState.LINK_INVALID, FlowState.SUBMITTED}


def encode_answer(question: Question, value: Union[int, str, bool], yes_label: str, no_label: str) -> str:
    """Encode an answer the way the backend stores it: always a string.

    Likert -> "1".."5", numeric -> "0".."10", yes/no -> the localized label.
    """
    qtype = question.question_type
    if qtype == "yesno":
        if isinstance(value, bool):
            return yes_label if value else no_label
        if value in (yes_label, no_label):
            return value
        raise InvalidAnswer(f"Answer must be '{yes_label}' or '{no_label}'")

    allowed = LIKERT_VALUES if qtype == "likert" else NUMERIC_VALUES
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidAnswer(f"A {qtype} answer must be a number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidAnswer(f"A {qtype} answer must be a number") from None
    if isinstance(value, str) and value.strip() != str(number):
        raise InvalidAnswer(f"A {qtype} answer must be a whole number")
    if number not in allowed:
        raise InvalidAnswer(f"A {qtype} answer must be between {allowed[0]} and {allowed[-1]}")
    return str(number)


class ResponseFlow:
    def __init__(
        self,
        api: ApiClient,
        survey_id: str,
        respondent_id: Optional[str] = None,
        token: Optional[str] = None,
        yes_label: Optional[str] = None,
        no_label: Optional[str] = None,
    ):
        """
        Args:
            api (ApiClient): Backend client.
            survey_id (str): Survey from the entry URL.
            respondent_id (str|None): Device token; without one the device gate is skipped.
            token (str|None): Invitation token from the entry URL; without one the link gate is skipped.
        """
        settings = get_settings()
        self.api = api
        self.survey_id = survey_id
        self.respondent_id = respondent_id
        self.token = token
        self.yes_label = yes_label or settings.yes_label
        self.no_label = no_label or settings.no_label

        self.state = FlowState.LOADING
        self.survey: Optional[Survey] = None
        self.answers: Dict[str, str] = {}
        self.already_responded = False
        self.error: Optional[str] = None
        self.submitting = InFlight("submit")
        self.result: Optional[ResponseSubmitted] = None

    # ------------------------
    # Loading and gates
    # ------------------------
    def load(self) -> None:
        self.state = FlowState.LOADING
        self.error = None
        if self.token is not None and not self._link_gate():
            return
        try:
            self.survey = self.api.get_survey(self.survey_id)
        except ApiError as exc:
            self.error = exc.message
            self.state = FlowState.NOT_FOUND if exc.is_not_found else FlowState.LOAD_FAILED
            return
        self._device_gate()
        self.state = FlowState.READY

    def retry(self) -> None:
        if self.state in TERMINAL_STATES:
            return
        self.load()

    def _link_gate(self) -> bool:
        try:
            result = self.api.validate_invitation(self.token)
        except ApiError as exc:
            self.error = exc.message
            self.state = FlowState.LOAD_FAILED
            return False
        if not self._link_accepted(result):
            self.error = result.reason or "This link is not valid or has expired"
            self.state = FlowState.LINK_INVALID
            return False
        return True

    def _link_accepted(self, result: InvitationValidation) -> bool:
        """A link is usable only while valid and only for the survey it was issued for."""
        if not result.valid:
            return False
        return result.survey_id is None or result.survey_id == self.survey_id

    def _device_gate(self) -> None:
        if self.respondent_id is None:
            return
        try:
            check = self.api.check_respondent(self.survey_id, self.respondent_id)
        except ApiError as exc:
            logger.warning("Respondent check failed for survey %s: %s", self.survey_id, exc.message)
            return
        self.already_responded = not check.can_respond
        if self.already_responded:
            self.error = ALREADY_RESPONDED

    # ------------------------
    # Answers
    # ------------------------
    @property
    def questions(self) -> List[Question]:
        return self.survey.ordered_questions() if self.survey else []

    def _question(self, question_id: str) -> Question:
        for q in self.questions:
            if q.id == question_id:
                return q
        raise KeyError(question_id)

    def record_answer(self, question_id: str, value: Union[int, str, bool]) -> str:
        """Record (or replace) the answer to a question; returns the stored string."""
        encoded = encode_answer(self._question(question_id), value, self.yes_label, self.no_label)
        self.answers[question_id] = encoded
        return encoded

    def answer_for(self, question_id: str) -> Optional[str]:
        return self.answers.get(question_id)

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self.questions if q.id in self.answers)

    @property
    def total_count(self) -> int:
        return len(self.questions)

    @property
    def missing_required(self) -> List[Question]:
        return [q for q in self.questions if q.is_required and q.id not in self.answers]

    @property
    def can_submit(self) -> bool:
        return (
            self.state == FlowState.READY
            and not self.already_responded
            and not self.submitting.active
            and not self.missing_required
        )

    def build_payload(self) -> SurveyResponseCreate:
        return SurveyResponseCreate(
            survey_id=self.survey_id,
            respondent_id=self.respondent_id,
            invitation_token=self.token,
            responses=[
                QuestionResponseCreate(question_id=q.id, response_value=self.answers[q.id])
                for q in self.questions
                if q.id in self.answers
            ],
        )

    # ------------------------
    # Submission
    # ------------------------
    def submit(self) -> Optional[ResponseSubmitted]:
        """Re-check both gates, then send every answer in one request."""
        if self.state != FlowState.READY:
            return None
        if self.missing_required:
            self.error = MISSING_REQUIRED
            return None
        if self.already_responded:
            self.error = ALREADY_RESPONDED
            return None

        with self.submitting.guard():
            self.error = None
            if self.token is not None:
                try:
                    link = self.api.validate_invitation(self.token)
                except ApiError as exc:
                    self.error = exc.message
                    return None
                if not self._link_accepted(link):
                    self.error = link.reason or "This link is not valid or has expired"
                    self.state = FlowState.LINK_INVALID
                    return None

            self._device_gate()
            if self.already_responded:
                return None

            try:
                result = self.api.submit_response(self.survey_id, self.build_payload())
            except ApiError as exc:
                self.error = exc.message
                return None

        logger.info("Response %s submitted for survey %s", result.response_id, self.survey_id)
        self.result = result
        self.state = FlowState.SUBMITTED
        return result
