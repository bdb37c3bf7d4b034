"""Shared pydantic models — the contract between the gateway, the providers and main.py."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class IssueSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int  # JIRA-native numeric ID
    key: str  # PROJ-123
    type: str  # "Epic", "Story", "Test", ...
    summary: str
    rendered_description: str | None = None
    labels: list[str] = []


class Requirement(BaseModel):
    """A node in the requirement forest. Children are owned; parents are never stored."""

    model_config = ConfigDict(frozen=True)

    name: str
    card_number: str | None = None  # None only for synthetic groupings
    type: str
    narrative: str | None = None
    children: list[Requirement] = []

    @classmethod
    def from_issue(cls, issue: IssueSummary) -> Requirement:
        return cls(
            name=issue.summary,
            card_number=issue.key,
            type=issue.type,
            narrative=issue.rendered_description,
        )

    def with_children(self, children: list[Requirement]) -> Requirement:
        return self.model_copy(update={"children": list(children)})


class TestTag(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str

    @classmethod
    def for_issue(cls, issue: IssueSummary) -> TestTag:
        return cls(name=issue.summary, type=issue.type)

    @classmethod
    def for_requirement(cls, requirement: Requirement) -> TestTag:
        return cls(name=requirement.name, type=requirement.type)


class TestResult(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ERROR = "ERROR"
    PENDING = "PENDING"
    SKIPPED = "SKIPPED"
    IGNORED = "IGNORED"


# Highest first: an outcome takes the most severe result among its steps.
_RESULT_PRECEDENCE = [
    TestResult.ERROR,
    TestResult.FAILURE,
    TestResult.PENDING,
    TestResult.IGNORED,
    TestResult.SKIPPED,
    TestResult.SUCCESS,
]


def aggregate_results(results: list[TestResult]) -> TestResult:
    """Return the most severe result, or PENDING when there is nothing to aggregate."""
    if not results:
        return TestResult.PENDING
    return min(results, key=_RESULT_PRECEDENCE.index)


class TestStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    result: TestResult


class TestOutcome(BaseModel):
    """A single test result as handed to the reporting renderer.

    Unlike the other models this one is mutable: tag providers read it and
    adaptors enrich it step by step while it is being built.
    """

    title: str
    story: str | None = None
    description: str | None = None
    issue_keys: list[str] = []
    steps: list[TestStep] = []
    annotated_result: TestResult | None = None
    start_time: datetime | None = None
    manual: bool = False

    @property
    def result(self) -> TestResult:
        if self.annotated_result is not None:
            return self.annotated_result
        return aggregate_results([step.result for step in self.steps])

    def record_step(self, step: TestStep) -> None:
        self.steps.append(step)


class ScheduleEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: str
    executed_on: str | None = None  # Zephyr display text, parsed by the adaptor


class ExecutionSchedule(BaseModel):
    """Zephyr execution history for one test issue, most recent entry first."""

    model_config = ConfigDict(frozen=True)

    entries: list[ScheduleEntry] = []
    status_names: dict[str, str] = {}  # "1" -> "PASS"
