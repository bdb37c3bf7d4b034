"""Abstract base class for issue query gateways."""

from abc import ABC, abstractmethod

from jreq.models import ExecutionSchedule, IssueSummary


class IssueGateway(ABC):
    @abstractmethod
    def find_by_key(self, key: str) -> IssueSummary | None: ...

    @abstractmethod
    def find_by_jql(self, jql: str) -> list[IssueSummary]: ...

    @abstractmethod
    def get_test_steps(self, issue_id: int) -> list[str]: ...

    @abstractmethod
    def get_execution_schedule(self, issue_id: int) -> ExecutionSchedule: ...
