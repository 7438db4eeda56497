"""Typed client for the survey backend REST API.

Every method issues exactly one request. Non-2xx responses raise `ApiError`
carrying the backend's `detail` message; transport failures raise
`NetworkError`. Nothing is retried.
"""
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

import httpx
import pandas as pd

from survey_client.config import get_settings
from survey_client.errors import ApiError, NetworkError
from survey_client.schemas import (
    Invitation,
    InvitationCreate,
    InvitationCreated,
    InvitationList,
    InvitationValidation,
    RespondentCheck,
    ResponseSubmitted,
    Survey,
    SurveyCreate,
    SurveyResponseCreate,
    SurveyStat,
    SurveyWithStats,
    UploadedFile,
)

logger = logging.getLogger(__name__)


def error_message(response: httpx.Response, fallback: str) -> str:
    """Return the body's `detail` string, or `fallback` when there is none."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str) and detail.strip():
        return detail
    return fallback


class ApiClient:
    def __init__(self, base_url: Optional[str] = None, http: Optional[httpx.Client] = None):
        """
        Args:
            base_url (str|None): Backend root; defaults to SURVEY_API_URL.
            http (httpx.Client|None): Preconfigured client (tests pass a TestClient).
                No timeout is applied to the default client.
        """
        if http is None:
            http = httpx.Client(base_url=base_url or get_settings().api_url, timeout=None)
        self.http = http

    def close(self) -> None:
        self.http.close()

    def _request(self, method: str, path: str, fallback: str, **kwargs) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            response = self.http.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise NetworkError(f"{fallback}: {exc}") from exc
        logger.debug("%s %s -> %s", method, path, response.status_code)
        if response.is_error:
            raise ApiError(error_message(response, fallback), status_code=response.status_code)
        return response

    # ------------------------
    # Surveys
    # ------------------------
    def get_surveys(self) -> List[SurveyWithStats]:
        r = self._request("GET", "/surveys", "Failed to load surveys")
        return [SurveyWithStats.model_validate(row) for row in r.json()]

    def get_survey(self, survey_id: str) -> Survey:
        r = self._request("GET", f"/surveys/{survey_id}", "Failed to load the survey")
        return Survey.model_validate(r.json())

    def create_survey(self, payload: SurveyCreate) -> Survey:
        r = self._request("POST", "/surveys", "Failed to create the survey", json=payload.model_dump(mode="json"))
        return Survey.model_validate(r.json())

    def update_survey(self, survey_id: str, payload: SurveyCreate) -> Survey:
        r = self._request(
            "PUT", f"/surveys/{survey_id}", "Failed to update the survey", json=payload.model_dump(mode="json")
        )
        return Survey.model_validate(r.json())

    def delete_survey(self, survey_id: str) -> None:
        self._request("DELETE", f"/surveys/{survey_id}", "Failed to delete the survey")

    # ------------------------
    # Responses
    # ------------------------
    def submit_response(self, survey_id: str, payload: SurveyResponseCreate) -> ResponseSubmitted:
        r = self._request(
            "POST",
            f"/surveys/{survey_id}/responses",
            "Failed to submit the responses",
            json=payload.model_dump(mode="json", exclude_none=True),
        )
        return ResponseSubmitted.model_validate(r.json())

    def check_respondent(self, survey_id: str, respondent_id: str) -> RespondentCheck:
        r = self._request(
            "GET",
            f"/surveys/{survey_id}/respondents/{respondent_id}/can-respond",
            "Failed to check the respondent",
        )
        return RespondentCheck.model_validate(r.json())

    # ------------------------
    # Statistics and export
    # ------------------------
    def get_survey_stats(self, survey_id: str) -> SurveyStat:
        r = self._request("GET", f"/surveys/{survey_id}/stats", "Failed to load the statistics")
        return SurveyStat.model_validate(r.json())

    def export_survey_data(self, survey_id: str) -> Any:
        r = self._request("GET", f"/surveys/{survey_id}/export", "Failed to export the data")
        return r.json()

    def export_responses_frame(self, survey_id: str) -> pd.DataFrame:
        """Flatten the export document into one row per answered question.

        Columns: response_id, respondent_id, submitted_at, question_id, question_text, response_value.
        """
        data = self.export_survey_data(survey_id)
        questions = {}
        for q in data.get("questions", []):
            questions[q["id"]] = q.get("question_text")
        for section in data.get("sections", []):
            for q in section.get("questions", []):
                questions[q["id"]] = q.get("question_text")
        rows = []
        for resp in data.get("responses", []):
            for answer in resp.get("responses", []):
                rows.append({
                    "response_id": resp.get("id"),
                    "respondent_id": resp.get("respondent_id"),
                    "submitted_at": resp.get("submitted_at"),
                    "question_id": answer["question_id"],
                    "question_text": questions.get(answer["question_id"]),
                    "response_value": answer["response_value"],
                })
        columns = ["response_id", "respondent_id", "submitted_at", "question_id", "question_text", "response_value"]
        return pd.DataFrame(rows, columns=columns)

    def download_survey_pdf(self, survey_id: str) -> bytes:
        r = self._request("GET", f"/surveys/{survey_id}/pdf", "Failed to download the PDF")
        return r.content

    # ------------------------
    # Files
    # ------------------------
    def upload_file(self, path: Union[str, Path], content_type: str) -> UploadedFile:
        path = Path(path)
        with path.open("rb") as fh:
            r = self._request(
                "POST", "/upload", "Failed to upload the file", files={"file": (path.name, fh, content_type)}
            )
        return UploadedFile.model_validate(r.json())

    # ------------------------
    # Invitations
    # ------------------------
    def create_invitation(self, survey_id: str, expires_in_hours: int) -> InvitationCreated:
        body = InvitationCreate(expires_in_hours=expires_in_hours)
        r = self._request(
            "POST", f"/surveys/{survey_id}/invitations", "Failed to create the link", json=body.model_dump()
        )
        return InvitationCreated.model_validate(r.json())

    def get_invitations(self, survey_id: str) -> List[Invitation]:
        r = self._request("GET", f"/surveys/{survey_id}/invitations", "Failed to load the links")
        return InvitationList.model_validate(r.json()).invitations

    def deactivate_invitation(self, survey_id: str, token: str) -> None:
        self._request("DELETE", f"/surveys/{survey_id}/invitations/{token}", "Failed to deactivate the link")

    def validate_invitation(self, token: str) -> InvitationValidation:
        r = self._request("GET", f"/invitations/{token}/validate", "Failed to validate the link")
        return InvitationValidation.model_validate(r.json())
