"""Manual test outcomes read from the JIRA Zephyr plugin."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import NamedTuple

from loguru import logger

from jreq.cache import IssueCache
from jreq.errors import GatewayError, IssueNotFoundError, ZephyrError
from jreq.gateway.base import IssueGateway
from jreq.gateway.jira import JiraGateway
from jreq.models import ExecutionSchedule, IssueSummary, TestOutcome, TestResult, TestStep
from jreq.settings import JreqSettings

DEFAULT_STORY = "Manual tests"

TEST_STATUS_MAP = {
    "PASS": TestResult.SUCCESS,
    "FAIL": TestResult.FAILURE,
    "WIP": TestResult.PENDING,
    "BLOCKED": TestResult.SKIPPED,
    "UNEXECUTED": TestResult.IGNORED,
}

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
_TIME_FORMAT = "%I:%M %p"
_ABSOLUTE_FORMATS = ("%d/%b/%y %I:%M %p", "%d/%b/%Y %I:%M %p")


class ExecutionRecord(NamedTuple):
    result: TestResult
    executed_on: datetime | None


def result_for_status(status_code: str, status_names: dict[str, str]) -> TestResult:
    """Map a Zephyr execution status code to a TestResult; anything unknown is PENDING."""
    name = status_names.get(status_code)
    return TEST_STATUS_MAP.get(name, TestResult.PENDING) if name else TestResult.PENDING


def parse_execution_date(text: str, now: datetime | None = None) -> datetime:
    """Parse the date Zephyr shows for an execution.

    Recent executions are relative ("Today 3:45 PM", "Yesterday 10:02 AM",
    "Monday 9:15 AM"), older ones absolute ("12/Mar/13 10:20 AM").
    """
    now = now or datetime.now()
    cleaned = " ".join(text.split())
    day, _, time_text = cleaned.partition(" ")
    day = day.lower()

    if day in ("today", "yesterday") or day in _WEEKDAYS:
        try:
            time_of_day = datetime.strptime(time_text, _TIME_FORMAT).time()
        except ValueError as exc:
            raise ZephyrError(f"Unparseable Zephyr execution date: {text!r}") from exc
        if day == "today":
            days_back = 0
        elif day == "yesterday":
            days_back = 1
        else:
            days_back = (now.weekday() - _WEEKDAYS.index(day)) % 7 or 7
        return datetime.combine(now.date() - timedelta(days=days_back), time_of_day)

    for fmt in _ABSOLUTE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    raise ZephyrError(f"Unparseable Zephyr execution date: {text!r}")


class ZephyrAdaptor:
    """Turns JIRA "Test" issues and their Zephyr executions into manual TestOutcomes.

    Unlike the requirements provider, this adaptor does not degrade: a JIRA
    failure or a malformed Zephyr record aborts loading with ZephyrError.
    """

    def __init__(
        self,
        gateway: IssueGateway,
        project_key: str,
        issue_cache: IssueCache | None = None,
        now: datetime | None = None,
    ) -> None:
        self._gateway = gateway
        self._project_key = project_key
        self._issue_cache = issue_cache or IssueCache()
        self._now = now

    @classmethod
    def from_settings(cls, settings: JreqSettings) -> "ZephyrAdaptor":
        return cls(JiraGateway(settings), project_key=settings.jira_project or "")

    def load_outcomes(self) -> list[TestOutcome]:
        try:
            manual_tests = self._gateway.find_by_jql(f"type=Test and project={self._project_key}")
        except GatewayError as exc:
            raise ZephyrError(f"Failed to load Zephyr manual tests: {exc}") from exc
        logger.info(f"Loading {len(manual_tests)} manual test(s) from project {self._project_key}")
        return [self._outcome_for(issue) for issue in manual_tests]

    def load_outcomes_from(self, path: Path) -> list[TestOutcome]:
        # Zephyr results live on the server; there is nothing to read from disk.
        return self.load_outcomes()

    def _outcome_for(self, issue: IssueSummary) -> TestOutcome:
        associated_issues = self._associated_issues(issue)
        outcome = TestOutcome(
            title=f"Manual test - {issue.summary} ({issue.key})",
            story=associated_issues[0].summary if associated_issues else DEFAULT_STORY,
            description=issue.rendered_description,
            issue_keys=[associated.key for associated in associated_issues],
            manual=True,
        )

        try:
            record = self._execution_record_for(self._gateway.get_execution_schedule(issue.id))
            step_texts = self._gateway.get_test_steps(issue.id)
        except GatewayError as exc:
            raise ZephyrError(f"Could not read Zephyr execution data for {issue.key}: {exc}") from exc

        for text in step_texts:
            outcome.record_step(TestStep(description=text, result=record.result))

        if not outcome.steps:
            outcome.annotated_result = record.result
        if record.executed_on is not None:
            outcome.start_time = record.executed_on
        return outcome

    def _associated_issues(self, issue: IssueSummary) -> list[IssueSummary]:
        """Labels on a test issue name the stories it covers; keep those that exist."""
        matching: list[IssueSummary] = []
        for label in issue.labels:
            try:
                found = self._issue_cache.get_or_load(label, self._find_issue)
            except GatewayError as exc:
                logger.warning(f"Could not look up label '{label}' on {issue.key}: {exc}")
                continue
            if found is not None:
                matching.append(found)
        return matching

    def _find_issue(self, key: str) -> IssueSummary | None:
        try:
            return self._gateway.find_by_key(key)
        except IssueNotFoundError:
            logger.debug(f"Label '{key}' is not an issue key")
            return None

    def _execution_record_for(self, schedule: ExecutionSchedule) -> ExecutionRecord:
        if not schedule.entries:
            return ExecutionRecord(TestResult.PENDING, None)
        latest = schedule.entries[0]
        executed_on = parse_execution_date(latest.executed_on, self._now) if latest.executed_on else None
        return ExecutionRecord(result_for_status(latest.status_code, schedule.status_names), executed_on)
