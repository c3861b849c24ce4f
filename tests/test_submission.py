import asyncio

import pytest
from sqlalchemy.orm import sessionmaker

from codequest.database import Base, build_engine
from codequest.exceptions import NotFound
from codequest.models import CodeSubmission, User, UserProgress
from codequest.schemas.grading import ExecutionResult, Outcome
from codequest.schemas.submission import SubmissionStatus
from codequest.services.submission_service import submission_service

from conftest import ADD_CODE, FIRST_CASE_ONLY_CODE, FakeCodeRunner, Seeder


@pytest.fixture(name="exercise_setup")
def exercise_setup_fixture(seed):
    user = seed.user()
    course = seed.course()
    lesson = seed.lesson(course)
    exercise = seed.exercise(lesson, points_reward=10)
    seed.exercise(lesson)  # keeps the course incomplete
    return user, course, exercise


@pytest.mark.asyncio
async def test_full_pass_completes_exercise(session, runner, exercise_setup):
    user, course, exercise = exercise_setup

    result = await submission_service.submit_code(session, runner, user.id, exercise.id, ADD_CODE)

    assert result.status == SubmissionStatus.PASSED
    assert result.test_results.outcome == Outcome.PASSED
    assert result.points_awarded == 10

    submission = session.get(CodeSubmission, result.submission_id)
    assert submission.status == "passed"
    assert submission.test_results["correct_count"] == 2

    progress = session.query(UserProgress).filter(UserProgress.user_id == user.id).one()
    assert progress.course_id == course.id
    assert progress.exercise_id == exercise.id
    assert progress.lesson_id is None and progress.quiz_id is None
    assert progress.status == "completed"
    assert progress.points_earned == 10
    assert progress.completed_at is not None

    session.refresh(user)
    assert user.total_points == 10


@pytest.mark.asyncio
async def test_partial_pass_is_a_failure(session, runner, exercise_setup):
    user, _, exercise = exercise_setup

    result = await submission_service.submit_code(session, runner, user.id, exercise.id, FIRST_CASE_ONLY_CODE)

    assert result.status == SubmissionStatus.FAILED
    assert result.test_results.correct_count == 1
    assert result.points_awarded == 0
    assert session.query(CodeSubmission).count() == 1
    assert session.query(UserProgress).count() == 0

    session.refresh(user)
    assert user.total_points == 0


@pytest.mark.asyncio
async def test_resubmitting_passing_code_credits_once(session, runner, exercise_setup):
    user, _, exercise = exercise_setup

    first = await submission_service.submit_code(session, runner, user.id, exercise.id, ADD_CODE)
    second = await submission_service.submit_code(session, runner, user.id, exercise.id, ADD_CODE)

    assert first.points_awarded == 10
    assert second.points_awarded == 0
    assert second.status == SubmissionStatus.PASSED
    assert session.query(CodeSubmission).count() == 2
    assert session.query(UserProgress).count() == 1

    session.refresh(user)
    assert user.total_points == 10


@pytest.mark.asyncio
async def test_failing_after_passing_keeps_progress(session, runner, exercise_setup):
    user, _, exercise = exercise_setup

    await submission_service.submit_code(session, runner, user.id, exercise.id, ADD_CODE)
    await submission_service.submit_code(session, runner, user.id, exercise.id, "broken")

    progress = session.query(UserProgress).one()
    assert progress.status == "completed"
    assert progress.points_earned == 10


@pytest.mark.asyncio
async def test_malformed_test_data_degrades_to_failed_verdict(session, runner, seed):
    user = seed.user()
    lesson = seed.lesson(seed.course())
    exercise = seed.exercise(lesson, test_cases={"input": 1})

    result = await submission_service.submit_code(session, runner, user.id, exercise.id, ADD_CODE)

    assert result.status == SubmissionStatus.FAILED
    assert result.test_results.total_count == 0
    assert "could not be read" in result.test_results.message
    assert runner.calls == []
    assert session.query(CodeSubmission).count() == 1
    assert session.query(UserProgress).count() == 0


@pytest.mark.asyncio
async def test_runner_errors_fail_cases(session, runner, exercise_setup):
    user, _, exercise = exercise_setup
    runner.script("slow", [ExecutionResult(error="Execution timed out"), ExecutionResult(output=0)])

    result = await submission_service.submit_code(session, runner, user.id, exercise.id, "slow")

    assert result.status == SubmissionStatus.FAILED
    assert result.test_results.items[0].error == "Execution timed out"
    assert result.test_results.items[1].passed is True


@pytest.mark.asyncio
async def test_runner_receives_inputs_and_language(session, runner, seed):
    user = seed.user()
    lesson = seed.lesson(seed.course(language="javascript"))
    exercise = seed.exercise(lesson)

    await submission_service.submit_code(session, runner, user.id, exercise.id, ADD_CODE)

    assert runner.calls == [(ADD_CODE, [[2, 3], [0, 0]], "javascript")]


@pytest.mark.asyncio
async def test_unknown_exercise(session, runner, seed):
    user = seed.user()

    with pytest.raises(NotFound):
        await submission_service.submit_code(session, runner, user.id, 999, ADD_CODE)


@pytest.mark.asyncio
async def test_unknown_user_has_no_side_effects(session, runner, exercise_setup):
    _, _, exercise = exercise_setup

    with pytest.raises(NotFound):
        await submission_service.submit_code(session, runner, 999, exercise.id, ADD_CODE)

    assert runner.calls == []
    assert session.query(CodeSubmission).count() == 0


@pytest.mark.asyncio
async def test_grade_submission_records_nothing(session, runner, exercise_setup):
    _, _, exercise = exercise_setup

    verdict = await submission_service.grade_submission(session, runner, exercise.id, ADD_CODE)

    assert verdict.passed
    assert session.query(CodeSubmission).count() == 0


@pytest.mark.asyncio
async def test_list_submissions_newest_first(session, runner, exercise_setup):
    user, _, exercise = exercise_setup

    first = await submission_service.submit_code(session, runner, user.id, exercise.id, "broken")
    second = await submission_service.submit_code(session, runner, user.id, exercise.id, ADD_CODE)

    history = submission_service.list_submissions(session, user.id)
    assert [s.id for s in history] == [second.submission_id, first.submission_id]
    assert submission_service.list_submissions(session, user.id, exercise_id=999) == []

    with pytest.raises(NotFound):
        submission_service.list_submissions(session, 999)


@pytest.mark.asyncio
async def test_ledger_failure_keeps_submission_and_progress(session, runner, exercise_setup, monkeypatch):
    from codequest.exceptions import LedgerInconsistency
    from codequest.services import progress_service as progress_module

    user, _, exercise = exercise_setup

    def failing_credit(db, user_id, delta):
        raise LedgerInconsistency(user_id, delta, "user not found")

    monkeypatch.setattr(progress_module.points_ledger, "credit_points", failing_credit)

    result = await submission_service.submit_code(session, runner, user.id, exercise.id, ADD_CODE)

    assert result.status == SubmissionStatus.PASSED
    assert result.points_awarded == 0
    assert session.query(CodeSubmission).count() == 1
    assert session.query(UserProgress).one().points_earned == 10

    session.refresh(user)
    assert user.total_points == 0
    assert session.get(User, user.id) is not None


class SlowCodeRunner(FakeCodeRunner):
    """Holds every execution long enough for submissions to overlap"""

    async def execute(self, code, inputs, language="python"):
        await asyncio.sleep(0.2)
        return await super().execute(code, inputs, language=language)


@pytest.fixture(name="file_db")
def file_db_fixture(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'codequest.db'}")
    Base.metadata.create_all(engine)
    FileSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    opened = []

    def open_session():
        session = FileSession()
        opened.append(session)
        return session

    yield open_session
    for session in opened:
        session.close()
    engine.dispose()


def seed_file_db(open_session, users=1):
    seed = Seeder(open_session())
    user_ids = [seed.user().id for _ in range(users)]
    lesson = seed.lesson(seed.course())
    exercise_id = seed.exercise(lesson, points_reward=10).id
    seed.exercise(lesson)  # keeps the course incomplete
    seed.session.close()
    return user_ids, exercise_id


@pytest.mark.asyncio
async def test_overlapping_submissions_from_one_user_credit_once(file_db):
    (user_id,), exercise_id = seed_file_db(file_db)
    runner = SlowCodeRunner()
    runner.script(ADD_CODE, [5, 0])

    results = await asyncio.gather(
        submission_service.submit_code(file_db(), runner, user_id, exercise_id, ADD_CODE),
        submission_service.submit_code(file_db(), runner, user_id, exercise_id, ADD_CODE),
    )

    assert [r.status for r in results] == [SubmissionStatus.PASSED, SubmissionStatus.PASSED]
    assert sorted(r.points_awarded for r in results) == [0, 10]

    check = file_db()
    assert check.query(CodeSubmission).filter(CodeSubmission.user_id == user_id).count() == 2
    progress = check.query(UserProgress).filter(UserProgress.user_id == user_id).one()
    assert progress.exercise_id == exercise_id
    assert progress.points_earned == 10
    assert check.get(User, user_id).total_points == 10


@pytest.mark.asyncio
async def test_overlapping_submissions_from_two_users_are_both_stored(file_db):
    (first, second), exercise_id = seed_file_db(file_db, users=2)
    runner = SlowCodeRunner()
    runner.script(ADD_CODE, [5, 0])

    results = await asyncio.gather(
        submission_service.submit_code(file_db(), runner, first, exercise_id, ADD_CODE),
        submission_service.submit_code(file_db(), runner, second, exercise_id, ADD_CODE),
    )

    assert [r.points_awarded for r in results] == [10, 10]

    check = file_db()
    assert check.query(CodeSubmission).count() == 2
    assert check.query(UserProgress).count() == 2
    assert [check.get(User, user_id).total_points for user_id in (first, second)] == [10, 10]
