import pytest

from codequest.exceptions import MalformedAnswers, MalformedTestData
from codequest.schemas.grading import ExecutionResult, Outcome, TestCase, Verdict
from codequest.services.grading_service import grading_service


def test_parse_test_cases_accepts_json_and_alias():
    cases = grading_service.parse_test_cases('[{"input": [2, 3], "expected_output": 5}]')

    assert len(cases) == 1
    assert cases[0].input == [2, 3]
    assert cases[0].expected == 5


@pytest.mark.parametrize("raw", [
    "not json",
    '{"input": 1, "expected": 2}',
    [],
    [{"input": 1}],
    ["loose string"],
])
def test_parse_test_cases_rejects_malformed(raw):
    with pytest.raises(MalformedTestData):
        grading_service.parse_test_cases(raw)


def test_parse_answers_allows_nulls():
    assert grading_service.parse_answers(["a", None, "c"]) == ["a", None, "c"]
    assert grading_service.parse_answers('["a"]') == ["a"]


@pytest.mark.parametrize("raw", [{"0": "a"}, "a,b", [1, 2], [["a"]], "[1]"])
def test_parse_answers_rejects_malformed(raw):
    with pytest.raises(MalformedAnswers):
        grading_service.parse_answers(raw)


@pytest.mark.parametrize("expected, actual, equal", [
    (5, 5, True),
    (5, "5", True),
    (5, 5.0, True),
    (0.3, 0.1 + 0.2, True),
    (True, 1, False),
    (1, True, False),
    ([1, [2, 3]], [1, [2, 3]], True),
    ([1, 2], [1, 2, 3], False),
    ({"a": 1}, {"a": 1.0}, True),
    ("hello", "hello\n", True),
    ("5", 5, False),
    (5, "five", False),
    (None, None, True),
])
def test_values_equal(expected, actual, equal):
    assert grading_service.values_equal(expected, actual) is equal


def test_grade_code_all_pass():
    cases = [TestCase(input=[2, 3], expected=5), TestCase(input=[0, 0], expected=0)]
    verdict = grading_service.grade_code(cases, [ExecutionResult(output=5), ExecutionResult(output=0)])

    assert verdict.outcome == Outcome.PASSED
    assert verdict.correct_count == 2
    assert verdict.percentage == 100.0
    assert [item.passed for item in verdict.items] == [True, True]


def test_grade_code_is_binary():
    cases = [TestCase(input=[2, 3], expected=5), TestCase(input=[0, 0], expected=0)]
    verdict = grading_service.grade_code(cases, [ExecutionResult(output=5), ExecutionResult(output=1)])

    assert verdict.outcome == Outcome.FAILED
    assert verdict.correct_count == 1
    assert verdict.items[1].actual == 1


def test_grade_code_execution_error_fails_case():
    cases = [TestCase(input=1, expected=1), TestCase(input=2, expected=2)]
    verdict = grading_service.grade_code(cases, [ExecutionResult(output=1), ExecutionResult(error="Timeout")])

    assert verdict.outcome == Outcome.FAILED
    assert verdict.items[1].error == "Timeout"


def test_grade_code_missing_results_fail():
    cases = [TestCase(input=1, expected=1), TestCase(input=2, expected=2)]
    verdict = grading_service.grade_code(cases, [ExecutionResult(output=1)])

    assert verdict.outcome == Outcome.FAILED
    assert verdict.items[1].error == "No result returned"


def test_malformed_verdict():
    verdict = grading_service.malformed_verdict(MalformedTestData("Test cases must be a list"))

    assert verdict.outcome == Outcome.FAILED
    assert verdict.total_count == 0
    assert verdict.percentage == 0.0
    assert "Test cases must be a list" in verdict.message


@pytest.mark.parametrize("answers, outcome, correct", [
    (["b", "c", "a"], Outcome.PASSED, 3),
    (["b", "c", "b"], Outcome.PARTIAL, 2),
    (["a", "a", "b"], Outcome.FAILED, 0),
    (["b"], Outcome.PARTIAL, 1),
    ([], Outcome.FAILED, 0),
    (["b", None, "a", "extra"], Outcome.PARTIAL, 2),
])
def test_grade_quiz(answers, outcome, correct):
    verdict = grading_service.grade_quiz(["b", "c", "a"], answers)

    assert verdict.outcome == outcome
    assert verdict.correct_count == correct
    assert verdict.total_count == 3


def test_grade_quiz_is_exact_match():
    verdict = grading_service.grade_quiz(["Paris"], ["paris"])
    assert verdict.correct_count == 0


@pytest.mark.parametrize("correct, total, reward, points", [
    (2, 3, 90, 60),
    (1, 3, 90, 30),
    (1, 3, 10, 3),
    (3, 3, 10, 10),
    (0, 3, 90, 0),
    (0, 0, 90, 0),
])
def test_quiz_points_floor(correct, total, reward, points):
    assert grading_service.quiz_points(correct, total, reward) == points


def test_verdict_percentage_serialized():
    verdict = Verdict(outcome=Outcome.PARTIAL, correct_count=2, total_count=3)
    assert verdict.model_dump()["percentage"] == 66.67
