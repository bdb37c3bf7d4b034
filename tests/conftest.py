"""Shared test fixtures."""

from collections import Counter

import pytest

from jreq.errors import GatewayError
from jreq.gateway.base import IssueGateway
from jreq.models import ExecutionSchedule, IssueSummary

EPIC_JQL = "issuetype = epic and project=TRAD"


def make_issue(id: int, key: str, type: str, summary: str, labels: list[str] | None = None) -> IssueSummary:
    return IssueSummary(
        id=id,
        key=key,
        type=type,
        summary=summary,
        rendered_description=f"<p>{summary}</p>",
        labels=labels or [],
    )


class FakeGateway(IssueGateway):
    """In-memory gateway: canned JQL results, issues by key, and call counting."""

    def __init__(
        self,
        issues: list[IssueSummary] | None = None,
        jql_results: dict[str, list[IssueSummary]] | None = None,
    ) -> None:
        self.issues = {issue.key: issue for issue in issues or []}
        self.jql_results = jql_results or {}
        self.key_errors: dict[str, GatewayError] = {}
        self.jql_errors: dict[str, GatewayError] = {}
        self.steps: dict[int, list[str]] = {}
        self.schedules: dict[int, ExecutionSchedule] = {}
        self.step_errors: dict[int, GatewayError] = {}
        self.calls: Counter[str] = Counter()
        self.queries: list[str] = []
        self.key_lookups: list[str] = []

    def find_by_key(self, key: str) -> IssueSummary | None:
        self.calls["find_by_key"] += 1
        self.key_lookups.append(key)
        if key in self.key_errors:
            raise self.key_errors[key]
        return self.issues.get(key)

    def find_by_jql(self, jql: str) -> list[IssueSummary]:
        self.calls["find_by_jql"] += 1
        self.queries.append(jql)
        if jql in self.jql_errors:
            raise self.jql_errors[jql]
        return list(self.jql_results.get(jql, []))

    def get_test_steps(self, issue_id: int) -> list[str]:
        self.calls["get_test_steps"] += 1
        if issue_id in self.step_errors:
            raise self.step_errors[issue_id]
        return list(self.steps.get(issue_id, []))

    def get_execution_schedule(self, issue_id: int) -> ExecutionSchedule:
        self.calls["get_execution_schedule"] += 1
        return self.schedules.get(issue_id, ExecutionSchedule())


SELLING = make_issue(10001, "TRAD-1", "Epic", "Selling stuff")
PREMIUM = make_issue(10006, "TRAD-6", "Epic", "Bring premium listings to the attention of buyers")
POST_ITEM = make_issue(10005, "TRAD-5", "Story", "Post item for sale")
BY_CATEGORY = make_issue(10007, "TRAD-7", "Story", "List items by category")
FEATURED = make_issue(10008, "TRAD-8", "Story", "Show featured listings first")


@pytest.fixture
def trading_gateway() -> FakeGateway:
    """Two epics; TRAD-1 holds two stories, TRAD-6 holds one."""
    return FakeGateway(
        issues=[SELLING, PREMIUM, POST_ITEM, BY_CATEGORY, FEATURED],
        jql_results={
            EPIC_JQL: [SELLING, PREMIUM],
            "'Epic Link' = TRAD-1": [POST_ITEM, BY_CATEGORY],
            "'Epic Link' = TRAD-6": [FEATURED],
        },
    )
