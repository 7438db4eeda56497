"""Shareable invitation links for one survey.

Links are created with a time-to-live picked from a fixed menu, listed with
their live expiry status, and deactivated one way. Failures become error
notices; the manager keeps working and never touches the editor's draft.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from urllib.parse import urlencode

from survey_client.actions import InFlight, Notices, TransientFlag
from survey_client.api import ApiClient
from survey_client.config import get_settings
from survey_client.errors import ApiError
from survey_client.schemas import Invitation, InvitationCreated

logger = logging.getLogger(__name__)

TTL_CHOICES = {
    1: "1 hour",
    24: "24 hours",
    72: "3 days",
    168: "1 week",
    720: "30 days",
}
DEFAULT_TTL_HOURS = 24
COPIED_SECONDS = 2.0


def share_url(origin: str, survey_id: str, token: str) -> str:
    return f"{origin}/survey/{survey_id}?{urlencode({'token': token})}"


def format_expiration(expires_at: datetime) -> str:
    return expires_at.strftime("%B %d, %Y %H:%M")


class InvitationManager:
    def __init__(
        self,
        api: ApiClient,
        survey_id: str,
        copy_to_clipboard: Optional[Callable[[str], None]] = None,
        origin: Optional[str] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        copied_flag: Optional[TransientFlag] = None,
    ):
        """
        Args:
            api (ApiClient): Backend client.
            survey_id (str): Survey the links point at.
            copy_to_clipboard (callable|None): Receives every link that should be copied.
            origin (str|None): Public origin of the response pages; defaults to SURVEY_PUBLIC_ORIGIN.
            clock (callable): Current UTC time, used for expiry display decisions.
        """
        self.api = api
        self.survey_id = survey_id
        self.copy_to_clipboard = copy_to_clipboard
        self.origin = (origin or get_settings().public_origin).rstrip("/")
        self.clock = clock
        self.ttl_hours = DEFAULT_TTL_HOURS
        self.invitations: List[Invitation] = []
        self.show_list = False
        self.notices = Notices()
        self.copied = copied_flag or TransientFlag(COPIED_SECONDS)
        self.generating = InFlight("generate link")
        self.last_url: Optional[str] = None

    def select_ttl(self, hours: int) -> None:
        if hours not in TTL_CHOICES:
            raise ValueError(f"Unsupported link duration: {hours}h (choose one of {sorted(TTL_CHOICES)})")
        self.ttl_hours = hours

    def _copy(self, url: str) -> None:
        self.last_url = url
        if self.copy_to_clipboard is not None:
            self.copy_to_clipboard(url)
        self.copied.raise_()

    def generate(self) -> Optional[InvitationCreated]:
        """Create a link with the selected duration and copy its absolute URL."""
        with self.generating.guard():
            try:
                created = self.api.create_invitation(self.survey_id, self.ttl_hours)
            except ApiError as exc:
                self.notices.error(exc.message)
                return None
        logger.info("Invitation created for survey %s (expires %s)", self.survey_id, created.expires_at)
        self._copy(f"{self.origin}{created.share_url}")
        self.notices.success("Link generated and copied to the clipboard")
        self.refresh()
        return created

    def refresh(self) -> None:
        try:
            self.invitations = self.api.get_invitations(self.survey_id)
        except ApiError:
            self.notices.error("Failed to load the links")

    def toggle_list(self) -> None:
        self.show_list = not self.show_list
        if self.show_list:
            self.refresh()

    def deactivate(self, token: str) -> bool:
        try:
            self.api.deactivate_invitation(self.survey_id, token)
        except ApiError:
            self.notices.error("Failed to deactivate the link")
            return False
        logger.info("Invitation %s deactivated", token)
        self.notices.success("Link deactivated")
        self.refresh()
        return True

    def copy_link(self, token: str) -> str:
        url = share_url(self.origin, self.survey_id, token)
        self._copy(url)
        self.notices.success("Link copied to the clipboard")
        return url

    def status(self, invitation: Invitation) -> str:
        """Return expired, active or inactive; expiry wins over the active flag."""
        if invitation.is_expired or invitation.expired_at(self.clock()):
            return "expired"
        return "active" if invitation.is_active else "inactive"

    def can_deactivate(self, invitation: Invitation) -> bool:
        return self.status(invitation) == "active"
