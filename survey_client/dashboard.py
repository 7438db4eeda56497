import logging
from typing import List, Optional

from survey_client.actions import InFlight, Notices
from survey_client.api import ApiClient
from survey_client.errors import ApiError
from survey_client.schemas import SurveyWithStats

logger = logging.getLogger(__name__)


class SurveyDashboard:
    """Home page: every survey with its response count."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.surveys: List[SurveyWithStats] = []
        self.loading = False
        self.error: Optional[str] = None
        self.notices = Notices()
        self.deleting = InFlight("delete")

    def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            self.surveys = self.api.get_surveys()
        except ApiError as exc:
            self.error = exc.message
        finally:
            self.loading = False

    def retry(self) -> None:
        self.load()

    def delete(self, survey_id: str) -> bool:
        with self.deleting.guard():
            try:
                self.api.delete_survey(survey_id)
            except ApiError as exc:
                self.notices.error(exc.message)
                return False
        logger.info("Survey %s deleted", survey_id)
        self.surveys = [s for s in self.surveys if s.id != survey_id]
        self.notices.success("Survey deleted")
        return True
