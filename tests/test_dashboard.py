from unittest.mock import Mock

from survey_client.dashboard import SurveyDashboard
from survey_client.errors import NetworkError


def test_load_and_delete(api, make_survey):
    keep = make_survey(title="Keep")
    drop = make_survey(title="Drop")
    dashboard = SurveyDashboard(api)
    dashboard.load()
    assert {s.title for s in dashboard.surveys} == {"Keep", "Drop"}
    assert all(s.total_responses == 0 for s in dashboard.surveys)

    assert dashboard.delete(drop.id)
    assert [s.id for s in dashboard.surveys] == [keep.id]
    assert dashboard.notices.latest().message == "Survey deleted"


def test_delete_failure_is_a_notice(api):
    dashboard = SurveyDashboard(api)
    assert dashboard.delete("missing") is False
    assert dashboard.notices.latest().level == "error"
    assert not dashboard.deleting.active


def test_load_failure_then_retry(make_survey):
    survey = make_survey()
    api = Mock()
    api.get_surveys.side_effect = [NetworkError("Failed to load surveys: offline"), [survey]]
    dashboard = SurveyDashboard(api)

    dashboard.load()
    assert dashboard.error and not dashboard.loading

    dashboard.retry()
    assert dashboard.error is None
    assert dashboard.surveys == [survey]
