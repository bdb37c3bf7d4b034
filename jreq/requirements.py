"""Requirements and tags derived from the JIRA epic/story hierarchy."""

from collections.abc import Sequence

from loguru import logger

from jreq.cache import IssueCache
from jreq.errors import GatewayError, IssueNotFoundError
from jreq.gateway.base import IssueGateway
from jreq.gateway.jira import JiraGateway
from jreq.models import IssueSummary, Requirement, TestOutcome, TestTag
from jreq.settings import JreqSettings

DEFAULT_LINK_LEVELS = ("Epic Link",)


class RequirementsProvider:
    """Builds a requirement forest from JIRA and resolves test outcome tags against it.

    The forest is fetched once, on first use, and kept for the lifetime of the
    provider. Construct a new provider to see fresh JIRA data.

    Requirements never hold a reference to their parent: every ancestor lookup
    walks the forest from the roots down, so even a loop in the remote links
    cannot produce a cyclic structure here.
    """

    def __init__(
        self,
        gateway: IssueGateway,
        project_key: str,
        root_issue_type: str = "epic",
        link_levels: Sequence[str] = DEFAULT_LINK_LEVELS,
        advance_link_levels: bool = False,
        issue_cache: IssueCache | None = None,
    ) -> None:
        if not link_levels:
            raise ValueError("at least one link level is required")
        self._gateway = gateway
        self._project_key = project_key
        self._root_issue_type = root_issue_type
        self._link_levels = list(link_levels)
        self._advance_link_levels = advance_link_levels
        self._issue_cache = issue_cache or IssueCache()
        self._requirements: list[Requirement] | None = None
        logger.debug(
            f"RequirementsProvider initialized — project={project_key}, root={root_issue_type}, "
            f"links={self._link_levels}"
        )

    @classmethod
    def from_settings(cls, settings: JreqSettings) -> "RequirementsProvider":
        return cls(
            JiraGateway(settings),
            project_key=settings.jira_project or "",
            root_issue_type=settings.root_issue_type,
            link_levels=settings.link_levels,
            advance_link_levels=settings.advance_link_levels,
        )

    @property
    def project_key(self) -> str:
        return self._project_key

    # ------------------------------------------------------------------
    # Requirement tree
    # ------------------------------------------------------------------

    def get_requirements(self) -> list[Requirement]:
        """Return the root requirements, each with its descendants attached.

        Never raises on JIRA failures: a failed root query yields an empty
        forest and a failed child query yields no children for that parent.
        """
        if self._requirements is None:
            try:
                root_issues = self._gateway.find_by_jql(self._root_requirements_jql())
            except GatewayError as exc:
                logger.warning(f"No root requirements found: {exc}")
                root_issues = []
            self._requirements = [self._root_requirement(issue) for issue in root_issues]
        return self._requirements

    def _root_requirements_jql(self) -> str:
        return f"issuetype = {self._root_issue_type} and project={self._project_key}"

    def _child_issues_jql(self, parent: Requirement, level: int) -> str:
        return f"'{self._link_levels[level]}' = {parent.card_number}"

    def _root_requirement(self, issue: IssueSummary) -> Requirement:
        requirement = Requirement.from_issue(issue)
        return requirement.with_children(self._find_children_for(requirement, 0, (issue.key,)))

    def _find_children_for(self, parent: Requirement, level: int, path: tuple[str, ...]) -> list[Requirement]:
        try:
            children = self._gateway.find_by_jql(self._child_issues_jql(parent, level))
        except GatewayError as exc:
            logger.warning(f"No children found for requirement {parent.card_number}: {exc}")
            return []
        return [self._child_requirement(issue, level, path) for issue in children]

    def _child_requirement(self, issue: IssueSummary, level: int, path: tuple[str, ...]) -> Requirement:
        requirement = Requirement.from_issue(issue)
        if not self._more_requirements(level):
            return requirement
        if issue.key in path:
            logger.warning(f"Requirement {issue.key} links back to its own ancestor; not expanding it again")
            return requirement
        # Unless advance_link_levels is set, every depth is discovered through
        # link_levels[0] and the depth check stays at level 0.
        next_level = level + 1 if self._advance_link_levels else 0
        grandchildren = self._find_children_for(requirement, next_level, (*path, issue.key))
        return requirement.with_children(grandchildren)

    def _more_requirements(self, level: int) -> bool:
        return level + 1 < len(self._link_levels)

    def get_flattened_requirements(self) -> list[Requirement]:
        """Pre-order, depth-first listing of every requirement in the forest."""
        return _flattened(self.get_requirements())

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find_issue(self, key: str) -> IssueSummary | None:
        # "no such issue" is as absent as a 404, and gets cached the same way
        try:
            return self._gateway.find_by_key(key)
        except IssueNotFoundError:
            return None

    def _issue_with_key(self, key: str) -> IssueSummary | None:
        return self._issue_cache.get_or_load(key, self._find_issue)

    def get_parent_requirement_of(self, outcome: TestOutcome) -> Requirement | None:
        """Project the outcome's first issue straight from JIRA into a Requirement.

        Returns None when the outcome has no issue keys or JIRA has no such
        issue; any other gateway failure propagates.
        """
        if not outcome.issue_keys:
            return None
        issue = self._issue_with_key(outcome.issue_keys[0])
        return Requirement.from_issue(issue) if issue else None

    def get_parent_requirement_of_key(self, key: str) -> Requirement | None:
        """Return the requirement in the forest that has `key` as a direct child."""
        for requirement in self.get_flattened_requirements():
            if any(child.card_number == key for child in requirement.children):
                return requirement
        return None

    def get_requirement_for(self, tag: TestTag) -> Requirement | None:
        for requirement in self.get_flattened_requirements():
            if requirement.type == tag.type and requirement.name == tag.name:
                return requirement
        return None

    def get_ancestors_of(self, key: str) -> list[Requirement]:
        """Return the ancestors of `key` in the forest, nearest parent first."""
        ancestors: list[Requirement] = []
        seen: set[str | None] = {key}
        parent = self.get_parent_requirement_of_key(key)
        while parent is not None and parent.card_number not in seen:
            ancestors.append(parent)
            seen.add(parent.card_number)
            if parent.card_number is None:
                break
            parent = self.get_parent_requirement_of_key(parent.card_number)
        return ancestors

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def decode_issue_key(self, issue_key: str) -> str:
        """Normalize "#5" and "5" to "PROJ-5"; full keys pass through unchanged."""
        issue_key = issue_key.removeprefix("#")
        if issue_key.isdigit():
            issue_key = f"{self._project_key}-{issue_key}"
        return issue_key

    def get_tags_for(self, outcome: TestOutcome) -> set[TestTag]:
        tags: set[TestTag] = set()
        for issue_key in outcome.issue_keys:
            tags.update(self._tags_from_issue(issue_key))
        return tags

    def _tags_from_issue(self, issue_key: str) -> set[TestTag]:
        logger.debug(f"Reading tags from issue {issue_key}")
        decoded_key = self.decode_issue_key(issue_key)
        tags: set[TestTag] = set()

        try:
            issue = self._issue_with_key(decoded_key)
        except GatewayError as exc:
            logger.warning(f"Could not read tags for issue {decoded_key}: {exc}")
            issue = None
        if issue is not None:
            tags.add(TestTag.for_issue(issue))

        tags.update(TestTag.for_requirement(parent) for parent in self.get_ancestors_of(decoded_key))
        return tags


def _flattened(requirements: list[Requirement]) -> list[Requirement]:
    flattened: list[Requirement] = []
    for requirement in requirements:
        flattened.append(requirement)
        flattened.extend(_flattened(requirement.children))
    return flattened
