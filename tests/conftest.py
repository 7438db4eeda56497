import os, tempfile
import pytest
from fastapi.testclient import TestClient

from fake_backend import create_app
from survey_client.api import ApiClient
from survey_client.schemas import QuestionCreate, SectionCreate, SurveyCreate
from survey_client.storage import LocalStorage

ORIGIN = "http://surveys.test"


@pytest.fixture
def tmp_db_path():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    os.remove(path)


@pytest.fixture
def storage(tmp_db_path):
    return LocalStorage(origin=ORIGIN, url=f"sqlite:///{tmp_db_path}")


@pytest.fixture
def backend_app():
    return create_app()


@pytest.fixture
def backend(backend_app):
    return backend_app.state.backend


@pytest.fixture
def api(backend_app):
    return ApiClient(http=TestClient(backend_app))


@pytest.fixture
def make_survey(api):
    def _make(title="Satisfaction", questions=None, sections=None, **fields):
        if questions is None:
            questions = [QuestionCreate(question_text="Rate us", question_type="likert", is_required=True)]
        payload = SurveyCreate(title=title, questions=questions, sections=sections or [], **fields)
        return api.create_survey(payload)
    return _make


@pytest.fixture
def sectioned_survey(make_survey):
    return make_survey(
        title="Service",
        sections=[
            SectionCreate(title="Staff", section_order=0, questions=[
                QuestionCreate(question_text="Were they friendly?", question_type="yesno", question_order=0),
                QuestionCreate(question_text="Waiting time", question_type="numeric", is_required=False,
                               question_order=1),
            ]),
        ],
        questions=[QuestionCreate(question_text="Overall", question_type="likert", question_order=0)],
    )
