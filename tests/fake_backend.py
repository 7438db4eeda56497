"""In-memory stand-in for the survey backend, served through FastAPI."""
import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from statistics import mean
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Response, UploadFile

from survey_client.schemas import InvitationCreate, SurveyCreate, SurveyResponseCreate


class BackendState:
    def __init__(self):
        self.surveys: dict[str, dict] = {}
        self.responses: dict[str, list[dict]] = {}
        self.invitations: dict[str, dict] = {}
        self.uploads: list[dict] = []
        self.now = lambda: datetime.now(timezone.utc)

    def questions_of(self, survey: dict) -> list[dict]:
        out = []
        for s in survey["sections"]:
            out.extend(s["questions"])
        out.extend(survey["questions"])
        return out

    def invitation_usable(self, inv: dict) -> bool:
        return inv["is_active"] and self.now() < inv["expires_at"]


def _questions(payload, section_id: Optional[str] = None) -> list[dict]:
    now = datetime.now(timezone.utc)
    return [
        {
            "id": uuid.uuid4().hex,
            "section_id": section_id,
            "created_at": now,
            **q.model_dump(),
        }
        for q in sorted(payload, key=lambda q: q.question_order)
    ]


def _apply(survey: dict, payload: SurveyCreate) -> None:
    survey.update(payload.model_dump(exclude={"sections", "questions"}))
    survey["sections"] = []
    for s in sorted(payload.sections, key=lambda s: s.section_order):
        section_id = uuid.uuid4().hex
        survey["sections"].append({
            "id": section_id,
            "title": s.title,
            "description": s.description,
            "section_order": s.section_order,
            "questions": _questions(s.questions, section_id),
        })
    survey["questions"] = _questions(payload.questions)
    survey["updated_at"] = datetime.now(timezone.utc)


def create_app():
    app = FastAPI(title="Fake Survey API")
    state = BackendState()
    app.state.backend = state

    def get_or_404(survey_id: str) -> dict:
        survey = state.surveys.get(survey_id)
        if not survey:
            raise HTTPException(404, "Survey not found")
        return survey

    def invitation_out(inv: dict) -> dict:
        return {**inv, "is_expired": state.now() >= inv["expires_at"]}

    # ------------------------
    # Surveys
    # ------------------------
    @app.get("/surveys")
    def list_surveys():
        return [{**s, "total_responses": len(state.responses[sid])} for sid, s in state.surveys.items()]

    @app.get("/surveys/{survey_id}")
    def get_survey(survey_id: str):
        return get_or_404(survey_id)

    @app.post("/surveys")
    def create_survey(payload: SurveyCreate):
        if not payload.title.strip():
            raise HTTPException(400, "Title is required")
        survey_id = uuid.uuid4().hex
        survey = {"id": survey_id, "created_at": datetime.now(timezone.utc)}
        _apply(survey, payload)
        state.surveys[survey_id] = survey
        state.responses[survey_id] = []
        return survey

    @app.put("/surveys/{survey_id}")
    def update_survey(survey_id: str, payload: SurveyCreate):
        survey = get_or_404(survey_id)
        _apply(survey, payload)
        return survey

    @app.delete("/surveys/{survey_id}")
    def delete_survey(survey_id: str):
        get_or_404(survey_id)
        del state.surveys[survey_id]
        del state.responses[survey_id]
        return {"ok": True}

    # ------------------------
    # Responses
    # ------------------------
    @app.post("/surveys/{survey_id}/responses")
    def submit_response(survey_id: str, payload: SurveyResponseCreate):
        survey = get_or_404(survey_id)
        if not survey["is_active"]:
            raise HTTPException(400, "Survey is not active")
        inv = None
        if payload.invitation_token is not None:
            inv = state.invitations.get(payload.invitation_token)
            if not inv or not state.invitation_usable(inv):
                raise HTTPException(403, "Invitation is not valid")
        answered = {r.question_id for r in payload.responses}
        missing = [q for q in state.questions_of(survey) if q["is_required"] and q["id"] not in answered]
        if missing:
            raise HTTPException(400, "Required questions are missing")
        if inv is not None:
            inv["response_count"] += 1
        response_id = uuid.uuid4().hex
        state.responses[survey_id].append({
            "id": response_id,
            "respondent_id": payload.respondent_id,
            "submitted_at": datetime.now(timezone.utc),
            "responses": [r.model_dump() for r in payload.responses],
        })
        return {"message": "Response recorded", "response_id": response_id}

    @app.get("/surveys/{survey_id}/respondents/{respondent_id}/can-respond")
    def can_respond(survey_id: str, respondent_id: str):
        get_or_404(survey_id)
        seen = any(r["respondent_id"] == respondent_id for r in state.responses[survey_id])
        return {"can_respond": not seen}

    # ------------------------
    # Stats, export, PDF
    # ------------------------
    @app.get("/surveys/{survey_id}/stats")
    def stats(survey_id: str):
        survey = get_or_404(survey_id)
        rows = state.responses[survey_id]

        def question_stat(q):
            values = [a["response_value"] for r in rows for a in r["responses"] if a["question_id"] == q["id"]]
            out = {
                "question_id": q["id"],
                "question_text": q["question_text"],
                "question_type": q["question_type"],
                "total_responses": len(values),
                "distribution": dict(Counter(values)),
            }
            if values and q["question_type"] != "yesno":
                nums = [int(v) for v in values]
                out.update(average_value=mean(nums), min_value=min(nums), max_value=max(nums))
            return out

        return {
            "survey_id": survey_id,
            "title": survey["title"],
            "total_responses": len(rows),
            "sections": [
                {"section_id": s["id"], "title": s["title"], "questions": [question_stat(q) for q in s["questions"]]}
                for s in survey["sections"]
            ],
            "questions": [question_stat(q) for q in survey["questions"]],
        }

    @app.get("/surveys/{survey_id}/export")
    def export(survey_id: str):
        survey = get_or_404(survey_id)
        return {**survey, "responses": state.responses[survey_id]}

    @app.get("/surveys/{survey_id}/pdf")
    def pdf(survey_id: str):
        survey = get_or_404(survey_id)
        body = f"%PDF-1.4\n% {survey['title']}\n".encode("utf-8")
        return Response(content=body, media_type="application/pdf")

    # ------------------------
    # Files
    # ------------------------
    @app.post("/upload")
    async def upload(file: UploadFile = File(...)):
        content = await file.read()
        stored = {
            "url": f"/uploads/{uuid.uuid4().hex}_{file.filename}",
            "filename": file.filename,
            "content_type": file.content_type,
            "size": len(content),
        }
        state.uploads.append(stored)
        return stored

    # ------------------------
    # Invitations
    # ------------------------
    @app.post("/surveys/{survey_id}/invitations")
    def create_invitation(survey_id: str, body: InvitationCreate):
        get_or_404(survey_id)
        token = uuid.uuid4().hex
        now = state.now()
        inv = {
            "token": token,
            "survey_id": survey_id,
            "expires_at": now + timedelta(hours=body.expires_in_hours),
            "is_active": True,
            "response_count": 0,
            "created_at": now,
        }
        state.invitations[token] = inv
        return {"token": token, "share_url": f"/survey/{survey_id}?token={token}", "expires_at": inv["expires_at"]}

    @app.get("/surveys/{survey_id}/invitations")
    def list_invitations(survey_id: str):
        get_or_404(survey_id)
        invs = [invitation_out(i) for i in state.invitations.values() if i["survey_id"] == survey_id]
        return {"invitations": invs}

    @app.delete("/surveys/{survey_id}/invitations/{token}")
    def deactivate_invitation(survey_id: str, token: str):
        inv = state.invitations.get(token)
        if not inv or inv["survey_id"] != survey_id:
            raise HTTPException(404, "Invitation not found")
        inv["is_active"] = False
        return {"ok": True}

    @app.get("/invitations/{token}/validate")
    def validate_invitation(token: str):
        inv = state.invitations.get(token)
        if not inv:
            return {"valid": False, "reason": "Unknown link"}
        if state.now() >= inv["expires_at"]:
            return {"valid": False, "survey_id": inv["survey_id"], "reason": "This link has expired"}
        if not inv["is_active"]:
            return {"valid": False, "survey_id": inv["survey_id"], "reason": "This link was deactivated"}
        return {"valid": True, "survey_id": inv["survey_id"]}

    return app
