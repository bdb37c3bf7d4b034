"""Tests for jreq.models."""

import pytest
from conftest import POST_ITEM

from jreq.models import Requirement, TestOutcome, TestResult, TestStep, TestTag, aggregate_results


def test_issue_frozen() -> None:
    with pytest.raises(Exception):  # ValidationError or TypeError depending on pydantic version
        POST_ITEM.summary = "changed"  # type: ignore[misc]


def test_requirement_from_issue() -> None:
    requirement = Requirement.from_issue(POST_ITEM)
    assert requirement.name == "Post item for sale"
    assert requirement.card_number == "TRAD-5"
    assert requirement.type == "Story"
    assert requirement.narrative == "<p>Post item for sale</p>"
    assert requirement.children == []


def test_with_children_returns_copy() -> None:
    epic = Requirement(name="Selling stuff", card_number="TRAD-1", type="Epic")
    story = Requirement.from_issue(POST_ITEM)

    with_story = epic.with_children([story])

    assert with_story.children == [story]
    assert epic.children == []


def test_synthetic_requirement_has_no_card_number() -> None:
    assert Requirement(name="Manual tests", type="Capability").card_number is None


def test_tags_compare_by_value() -> None:
    tags = {TestTag(name="Selling stuff", type="Epic"), TestTag(name="Selling stuff", type="Epic")}
    assert len(tags) == 1
    assert TestTag(name="Selling stuff", type="Epic") != TestTag(name="Selling stuff", type="Story")


def test_tag_for_issue_and_requirement_agree() -> None:
    assert TestTag.for_issue(POST_ITEM) == TestTag.for_requirement(Requirement.from_issue(POST_ITEM))


class TestAggregateResults:
    def test_empty_is_pending(self) -> None:
        assert aggregate_results([]) == TestResult.PENDING

    def test_most_severe_wins(self) -> None:
        assert aggregate_results([TestResult.SUCCESS, TestResult.FAILURE, TestResult.SKIPPED]) == TestResult.FAILURE

    def test_all_success(self) -> None:
        assert aggregate_results([TestResult.SUCCESS, TestResult.SUCCESS]) == TestResult.SUCCESS


class TestOutcomeResult:
    def test_annotated_result_wins(self) -> None:
        outcome = TestOutcome(title="t", annotated_result=TestResult.IGNORED)
        outcome.record_step(TestStep(description="s", result=TestResult.FAILURE))
        assert outcome.result == TestResult.IGNORED

    def test_derived_from_steps(self) -> None:
        outcome = TestOutcome(title="t")
        outcome.record_step(TestStep(description="s1", result=TestResult.SUCCESS))
        outcome.record_step(TestStep(description="s2", result=TestResult.SUCCESS))
        assert outcome.result == TestResult.SUCCESS

    def test_no_steps_is_pending(self) -> None:
        assert TestOutcome(title="t").result == TestResult.PENDING

    def test_outcomes_do_not_share_steps(self) -> None:
        first = TestOutcome(title="a")
        first.record_step(TestStep(description="s", result=TestResult.SUCCESS))
        assert TestOutcome(title="b").steps == []
