"""Exception hierarchy shared by the gateway, the requirements provider and the Zephyr adaptor."""


class GatewayError(Exception):
    """Raised when a JIRA or Zephyr query fails (transport, auth, query syntax, malformed response)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IssueNotFoundError(GatewayError):
    """Raised when JIRA rejects a single-issue lookup because the issue does not exist."""


class ZephyrError(Exception):
    """Raised when manual test outcomes cannot be synthesized from Zephyr data."""
