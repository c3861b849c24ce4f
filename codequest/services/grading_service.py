"""
Grading service - turns raw submissions into verdicts
Code: binary, every test case must pass
Quiz: exact answer match per question, partial credit allowed
"""
import json
import logging
import math
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from codequest.exceptions import MalformedAnswers, MalformedTestData
from codequest.schemas.grading import ExecutionResult, ItemResult, Outcome, TestCase, Verdict

logger = logging.getLogger(__name__)


class GradingService:
    """
    Service implementing the grading contract

    Strategy:
    - Test data and answers are parsed into typed records at the boundary
    - Code outputs are compared by value, not by their string form
    - Quiz answers are compared by exact string equality
    """

    FLOAT_TOLERANCE = 1e-9

    def parse_test_cases(self, raw: Any) -> List[TestCase]:
        """
        Parse an exercise's stored test cases

        Args:
            raw: JSON text or an already decoded list

        Returns:
            Ordered list of test cases

        Raises:
            MalformedTestData: if the payload is not a non-empty list of
                {input, expected} records
        """
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise MalformedTestData(f"Test cases are not valid JSON: {e}")

        if not isinstance(raw, list):
            raise MalformedTestData("Test cases must be a list")
        if not raw:
            raise MalformedTestData("Exercise has no test cases")

        cases = []
        for index, item in enumerate(raw):
            try:
                cases.append(TestCase.model_validate(item))
            except ValidationError as e:
                raise MalformedTestData(f"Test case {index} is invalid: {e.errors()[0]['msg']}")
        return cases

    def parse_answers(self, raw: Any) -> List[Optional[str]]:
        """
        Parse a quiz answer payload

        Missing answers may be sent as null. Anything that is not a list of
        strings/nulls is rejected so a corrupt payload never zero-scores.
        """
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError:
                raise MalformedAnswers("Answers are not valid JSON")

        if not isinstance(raw, list):
            raise MalformedAnswers("Answers must be a list")

        for index, answer in enumerate(raw):
            if answer is not None and not isinstance(answer, str):
                raise MalformedAnswers(f"Answer {index} must be a string or null")
        return list(raw)

    def values_equal(self, expected: Any, actual: Any) -> bool:
        """
        Compare a runner output with an expected value by value

        - Strings coming back from the runner are decoded as JSON when the
          expected value is not a string ("5" matches 5)
        - Booleans only match booleans
        - Numbers match across int/float
        - Lists and dicts compare element-wise
        """
        if isinstance(actual, str) and not isinstance(expected, str):
            try:
                actual = json.loads(actual)
            except ValueError:
                return False

        if isinstance(expected, bool) or isinstance(actual, bool):
            return isinstance(expected, bool) and isinstance(actual, bool) and expected == actual

        if isinstance(expected, (int, float)) and isinstance(actual, (int, float)):
            if isinstance(expected, int) and isinstance(actual, int):
                return expected == actual
            return math.isclose(expected, actual, rel_tol=self.FLOAT_TOLERANCE, abs_tol=self.FLOAT_TOLERANCE)

        if isinstance(expected, list) and isinstance(actual, list):
            return len(expected) == len(actual) and all(
                self.values_equal(e, a) for e, a in zip(expected, actual)
            )

        if isinstance(expected, dict) and isinstance(actual, dict):
            return expected.keys() == actual.keys() and all(
                self.values_equal(expected[k], actual[k]) for k in expected
            )

        if isinstance(expected, str) and isinstance(actual, str):
            # Runners echo stdout, trailing newlines are not significant
            return expected.rstrip("\n") == actual.rstrip("\n")

        return expected == actual

    def grade_code(
        self,
        test_cases: Sequence[TestCase],
        results: Sequence[ExecutionResult],
    ) -> Verdict:
        """
        Grade runner results against test cases

        A missing result or an execution error fails that case. The outcome
        is PASSED only when every case passes.
        """
        items = []
        for index, case in enumerate(test_cases):
            result = results[index] if index < len(results) else ExecutionResult(error="No result returned")

            if result.failed:
                items.append(ItemResult(
                    index=index, passed=False, expected=case.expected, error=result.error
                ))
                continue

            items.append(ItemResult(
                index=index,
                passed=self.values_equal(case.expected, result.output),
                expected=case.expected,
                actual=result.output,
            ))

        correct = sum(1 for item in items if item.passed)
        outcome = Outcome.PASSED if items and correct == len(items) else Outcome.FAILED

        logger.info(f"Code graded: {correct}/{len(items)} cases passed, outcome={outcome.value}")

        return Verdict(outcome=outcome, correct_count=correct, total_count=len(items), items=items)

    def malformed_verdict(self, error: MalformedTestData) -> Verdict:
        """All-failed verdict used when an exercise's test data is unusable"""
        return Verdict(
            outcome=Outcome.FAILED,
            correct_count=0,
            total_count=0,
            items=[],
            message=f"Exercise test data could not be read: {error.message}",
        )

    def grade_quiz(self, correct_answers: Sequence[str], answers: Sequence[Optional[str]]) -> Verdict:
        """
        Grade positional answers against the answer key

        Positions beyond the submitted answers count as incorrect, as do
        null answers. Extra answers are ignored.
        """
        items = []
        for index, correct in enumerate(correct_answers):
            given = answers[index] if index < len(answers) else None
            items.append(ItemResult(
                index=index,
                passed=given is not None and given == correct,
                expected=correct,
                actual=given,
            ))

        total = len(items)
        correct_count = sum(1 for item in items if item.passed)

        if correct_count == total:
            outcome = Outcome.PASSED
        elif correct_count == 0:
            outcome = Outcome.FAILED
        else:
            outcome = Outcome.PARTIAL

        logger.info(f"Quiz graded: {correct_count}/{total}, outcome={outcome.value}")

        return Verdict(outcome=outcome, correct_count=correct_count, total_count=total, items=items)

    def quiz_points(self, correct_count: int, total_questions: int, points_reward: int) -> int:
        """floor(correct / total * reward), computed in integers"""
        if total_questions <= 0:
            return 0
        return correct_count * points_reward // total_questions


# Global instance
grading_service = GradingService()
