"""Statistics page state.

All aggregation happens on the backend; the only figure computed here is the
overall completion rate.
"""
import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

import pandas as pd

from survey_client.actions import InFlight
from survey_client.api import ApiClient
from survey_client.errors import ApiError
from survey_client.schemas import QuestionStat, SurveyStat

logger = logging.getLogger(__name__)

LIKERT_LABELS = {
    "1": "Very dissatisfied",
    "2": "Dissatisfied",
    "3": "Neutral",
    "4": "Satisfied",
    "5": "Very satisfied",
}


def iter_question_stats(stat: SurveyStat) -> Iterator[QuestionStat]:
    for section in stat.sections:
        yield from section.questions
    yield from stat.questions


def total_question_count(stat: SurveyStat) -> int:
    return sum(1 for _ in iter_question_stats(stat))


def completion_rate(stat: SurveyStat) -> int:
    """Answered share of all possible answers, as a whole percent (0 when nothing is possible)."""
    possible = stat.total_responses * total_question_count(stat)
    if possible <= 0:
        return 0
    answered = sum(q.total_responses for q in iter_question_stats(stat))
    # half-up, not banker's rounding
    return int(answered * 100 / possible + 0.5)


@dataclass(frozen=True)
class DistributionRow:
    value: str
    label: str
    count: int
    percent: float


def distribution_rows(question: QuestionStat) -> List[DistributionRow]:
    """One row per distinct answer, in the backend's order, with its share of the question's answers."""
    total = sum(question.distribution.values())
    rows = []
    for value, count in question.distribution.items():
        label = LIKERT_LABELS.get(value, value) if question.question_type == "likert" else value
        percent = round(count / total * 100, 1) if total else 0.0
        rows.append(DistributionRow(value, label, count, percent))
    return rows


def distribution_frame(stat: SurveyStat) -> pd.DataFrame:
    """All distributions of a survey as one table (section, question, value, label, count, percent)."""
    records = []
    groups: List[Tuple[Optional[str], List[QuestionStat]]] = [(s.title, s.questions) for s in stat.sections]
    groups.append((None, stat.questions))
    for section_title, questions in groups:
        for q in questions:
            for row in distribution_rows(q):
                records.append({
                    "section": section_title,
                    "question_id": q.question_id,
                    "question_text": q.question_text,
                    "value": row.value,
                    "label": row.label,
                    "count": row.count,
                    "percent": row.percent,
                })
    columns = ["section", "question_id", "question_text", "value", "label", "count", "percent"]
    return pd.DataFrame(records, columns=columns)


def export_filename(survey_id: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"survey-{survey_id}-{today.isoformat()}.json"


class StatsView:
    def __init__(self, api: ApiClient, survey_id: str):
        self.api = api
        self.survey_id = survey_id
        self.stats: Optional[SurveyStat] = None
        self.loading = False
        self.error: Optional[str] = None
        self.exporting = InFlight("export")

    def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            self.stats = self.api.get_survey_stats(self.survey_id)
        except ApiError as exc:
            self.error = exc.message
        finally:
            self.loading = False

    def retry(self) -> None:
        self.load()

    @property
    def completion_rate(self) -> int:
        return completion_rate(self.stats) if self.stats else 0

    @property
    def question_count(self) -> int:
        return total_question_count(self.stats) if self.stats else 0

    def export_json(self, dest_dir: Union[str, Path], today: Optional[date] = None) -> Optional[Path]:
        """Download the export document and write it, pretty-printed, into `dest_dir`."""
        with self.exporting.guard():
            try:
                data = self.api.export_survey_data(self.survey_id)
            except ApiError as exc:
                self.error = exc.message
                return None
        target = Path(dest_dir) / export_filename(self.survey_id, today)
        target.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Export of survey %s written to %s", self.survey_id, target)
        return target

    def export_csv(self, dest_dir: Union[str, Path], today: Optional[date] = None) -> Optional[Path]:
        """Write the submitted answers as CSV, one row per answered question."""
        with self.exporting.guard():
            try:
                df = self.api.export_responses_frame(self.survey_id)
            except ApiError as exc:
                self.error = exc.message
                return None
        target = Path(dest_dir) / export_filename(self.survey_id, today).replace(".json", ".csv")
        df.to_csv(target, index=False)
        logger.info("CSV export of survey %s written to %s", self.survey_id, target)
        return target
