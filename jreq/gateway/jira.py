"""JIRA REST API v2 + Zephyr REST API gateway."""

import httpx
from loguru import logger

from jreq.errors import GatewayError, IssueNotFoundError
from jreq.gateway.base import IssueGateway
from jreq.models import ExecutionSchedule, IssueSummary, ScheduleEntry
from jreq.settings import JreqSettings

JIRA_API = "/rest/api/2"
ZEPHYR_API = "/rest/zephyr/1.0"

PAGE_SIZE = 50

_ISSUE_FIELDS = "summary,issuetype,labels,description"


class JiraGateway(IssueGateway):
    def __init__(self, settings: JreqSettings) -> None:
        if not settings.jira_url:
            raise RuntimeError("jira_url is required")
        self._base_url = settings.jira_url.rstrip("/")
        self._auth: tuple[str, str] | None = None
        if settings.jira_username:
            password = settings.jira_password.get_secret_value() if settings.jira_password else ""
            self._auth = (settings.jira_username, password)
        self._headers = {"Accept": "application/json"}
        logger.debug(f"JiraGateway initialized — url={self._base_url}, user={settings.jira_username or '(anonymous)'}")

    def _get(self, path: str, params: dict | None = None) -> dict | list:
        url = f"{self._base_url}{path}"
        logger.debug(f"JIRA GET {url} params={params or {}}")
        try:
            response = httpx.get(
                url,
                headers=self._headers,
                params=params or {},
                auth=self._auth,
                timeout=30,
            )
        except httpx.HTTPError as exc:
            raise GatewayError(f"JIRA request to {path} failed: {exc}") from exc
        if response.status_code == 401:
            raise GatewayError(
                "JIRA API returned 401. Check jira_username / jira_password for the active profile.",
                status_code=401,
            )
        if response.is_error:
            raise GatewayError(
                f"JIRA API returned error {response.status_code} for {path}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"JIRA API returned malformed JSON for {path}") from exc

    def _issue_from_node(self, node: dict) -> IssueSummary:
        try:
            fields = node["fields"]
            rendered = node.get("renderedFields") or {}
            return IssueSummary(
                id=int(node["id"]),
                key=node["key"],
                type=fields["issuetype"]["name"],
                summary=fields["summary"],
                rendered_description=rendered.get("description"),
                labels=fields.get("labels") or [],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise GatewayError(f"Malformed issue in JIRA response: {exc!r}") from exc

    def find_by_key(self, key: str) -> IssueSummary | None:
        try:
            node = self._get(f"{JIRA_API}/issue/{key}", params={"expand": "renderedFields", "fields": _ISSUE_FIELDS})
        except GatewayError as exc:
            if exc.status_code == 404:
                return None
            if exc.status_code == 400:
                raise IssueNotFoundError(f"error 400: no such issue '{key}'", status_code=400) from exc
            raise
        return self._issue_from_node(node)  # type: ignore[arg-type]

    def find_by_jql(self, jql: str) -> list[IssueSummary]:
        issues: list[IssueSummary] = []
        start_at = 0
        while True:
            page = self._get(
                f"{JIRA_API}/search",
                params={
                    "jql": jql,
                    "startAt": start_at,
                    "maxResults": PAGE_SIZE,
                    "expand": "renderedFields",
                    "fields": _ISSUE_FIELDS,
                },
            )
            try:
                nodes = page["issues"]  # type: ignore[call-overload]
                total = int(page.get("total", 0))  # type: ignore[union-attr]
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise GatewayError(f"Malformed JIRA search response for '{jql}'") from exc
            if not isinstance(nodes, list):
                raise GatewayError(f"Malformed JIRA search response for '{jql}': 'issues' is not a list")
            issues.extend(self._issue_from_node(n) for n in nodes)
            start_at += len(nodes)
            if not nodes or start_at >= total:
                return issues

    def get_test_steps(self, issue_id: int) -> list[str]:
        steps = self._get(f"{ZEPHYR_API}/teststep/{issue_id}")
        try:
            return [step["htmlStep"] for step in steps]  # type: ignore[index]
        except (KeyError, TypeError) as exc:
            raise GatewayError(f"Malformed Zephyr test steps for issue {issue_id}") from exc

    def get_execution_schedule(self, issue_id: int) -> ExecutionSchedule:
        data = self._get(f"{ZEPHYR_API}/schedule", params={"issueId": issue_id})
        try:
            entries = [
                ScheduleEntry(status_code=str(s["executionStatus"]), executed_on=s.get("executedOn"))
                for s in data["schedules"]  # type: ignore[call-overload]
            ]
            status_names = {str(code): status["name"] for code, status in data["status"].items()}  # type: ignore[call-overload]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise GatewayError(f"Malformed Zephyr schedule for issue {issue_id}") from exc
        return ExecutionSchedule(entries=entries, status_names=status_names)
