import fnmatch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from codequest.database import Base, build_engine, get_db
from codequest.main import app
from codequest.models import (
    Badge, Course, Exercise, Lesson, Quiz, QuizQuestion, User,
)
from codequest.schemas.grading import ExecutionResult
from codequest.services.code_runner import CodeRunner, get_code_runner
from codequest.utils.cache import cache_service
from codequest.utils.rate_limiter import rate_limiter

ADD_CODE = "def solve(a, b):\n    return a + b\n"
FIRST_CASE_ONLY_CODE = "def solve(a, b):\n    return a + b if a else 1\n"
ADD_CASES = [
    {"input": [2, 3], "expected_output": 5},
    {"input": [0, 0], "expected_output": 0},
]


class FakeCodeRunner(CodeRunner):
    """Replays scripted outputs per code string instead of executing code"""

    def __init__(self):
        self.outputs = {}
        self.calls = []

    def script(self, code, outputs):
        self.outputs[code] = outputs

    async def execute(self, code, inputs, language="python"):
        inputs = list(inputs)
        self.calls.append((code, inputs, language))
        outputs = self.outputs.get(code)
        if outputs is None:
            return [ExecutionResult(error="NameError: name 'solve' is not defined") for _ in inputs]
        return [
            output if isinstance(output, ExecutionResult) else ExecutionResult(output=output)
            for output in outputs
        ]


class InMemoryRedis:
    """Covers the few redis client calls the cache makes"""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def scan_iter(self, match):
        return [key for key in list(self.store) if fnmatch.fnmatch(key, match)]

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)


class Seeder:
    """Creates catalog rows directly, bypassing the engine"""

    def __init__(self, session: Session):
        self.session = session
        self._count = 0

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def user(self, username=None, total_points=0) -> User:
        self._count += 1
        username = username or f"learner{self._count}"
        return self._save(User(username=username, email=f"{username}@example.com", total_points=total_points))

    def course(self, title="Python Basics", language="python") -> Course:
        return self._save(Course(title=title, language=language, is_published=True))

    def lesson(self, course: Course, order_index=0) -> Lesson:
        return self._save(Lesson(course_id=course.id, title=f"Lesson {order_index}", order_index=order_index))

    def exercise(self, lesson: Lesson, test_cases=None, points_reward=10) -> Exercise:
        return self._save(Exercise(
            lesson_id=lesson.id,
            title="Add two numbers",
            test_cases=ADD_CASES if test_cases is None else test_cases,
            points_reward=points_reward,
        ))

    def quiz(self, lesson: Lesson, answer_key=("b", "c", "a"), points_reward=90) -> Quiz:
        quiz = self._save(Quiz(lesson_id=lesson.id, title="Checkpoint", points_reward=points_reward))
        for index, answer in enumerate(answer_key):
            self.session.add(QuizQuestion(
                quiz_id=quiz.id,
                question=f"Question {index + 1}?",
                options=["a", "b", "c"],
                correct_answer=answer,
                order_index=index,
            ))
        self.session.commit()
        return quiz

    def badge(self, name, requirement_type, requirement_value) -> Badge:
        return self._save(Badge(
            name=name,
            description=f"{requirement_type} >= {requirement_value}",
            icon="star",
            requirement_type=requirement_type,
            requirement_value=requirement_value,
        ))


@pytest.fixture(name="engine")
def engine_fixture():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    with TestingSession() as session:
        yield session


@pytest.fixture(name="seed")
def seed_fixture(session: Session):
    return Seeder(session)


@pytest.fixture(name="runner")
def runner_fixture():
    runner = FakeCodeRunner()
    runner.script(ADD_CODE, [5, 0])
    runner.script(FIRST_CASE_ONLY_CODE, [5, 1])
    return runner


@pytest.fixture(autouse=True)
def isolate_globals(monkeypatch):
    # No Redis in tests, and a fresh limiter per test
    monkeypatch.setattr(cache_service, "_client", None)
    monkeypatch.setattr(cache_service, "_connect_attempted", True)
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: Session, runner: FakeCodeRunner):
    def get_db_override():
        yield session

    app.dependency_overrides[get_db] = get_db_override
    app.dependency_overrides[get_code_runner] = lambda: runner
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
