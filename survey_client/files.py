import logging
import mimetypes
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional, Union

from survey_client.actions import InFlight
from survey_client.config import get_settings
from survey_client.errors import ApiError, ValidationFailed
from survey_client.schemas import UploadedFile

logger = logging.getLogger(__name__)


def pdf_filename(title: str, today: Optional[date] = None) -> str:
    """`{slug}_{yyyy-mm-dd}.pdf`, where slug is the lower-cased title with whitespace runs as `_`."""
    today = today or datetime.now(timezone.utc).date()
    slug = re.sub(r"\s+", "_", title).lower()
    return f"{slug}_{today.isoformat()}.pdf"


class PdfDownload:
    """State of the "download PDF" button for one survey."""

    def __init__(self, api, survey_id: str, survey_title: str):
        self.api = api
        self.survey_id = survey_id
        self.survey_title = survey_title
        self.downloading = InFlight("pdf download")
        self.error: Optional[str] = None

    def download(self, dest_dir: Union[str, Path], today: Optional[date] = None) -> Optional[Path]:
        with self.downloading.guard():
            self.error = None
            try:
                content = self.api.download_survey_pdf(self.survey_id)
            except ApiError as exc:
                self.error = exc.message
                return None
        target = Path(dest_dir) / pdf_filename(self.survey_title, today)
        target.write_bytes(content)
        logger.info("PDF for survey %s written to %s", self.survey_id, target)
        return target


class ImageUploader:
    def __init__(self, api, max_mb: Optional[float] = None):
        self.api = api
        self.max_mb = max_mb if max_mb is not None else get_settings().upload_max_mb

    def check(self, path: Union[str, Path]) -> str:
        """Return the file's media type, or raise `ValidationFailed` before any upload."""
        path = Path(path)
        if path.stat().st_size > self.max_mb * 1024 * 1024:
            raise ValidationFailed([f"The file must be smaller than {self.max_mb:g}MB"])
        content_type, _ = mimetypes.guess_type(path.name)
        if not content_type or not content_type.startswith("image/"):
            raise ValidationFailed(["Only image files are allowed"])
        return content_type

    def upload(self, path: Union[str, Path]) -> UploadedFile:
        content_type = self.check(path)
        return self.api.upload_file(path, content_type)
