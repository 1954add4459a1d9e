import asyncio
import copy
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure, WriteError

from dsa_practice.core.config import Settings
from dsa_practice.core.dependencies import get_storage
from dsa_practice.judge.client import JudgeClient
from dsa_practice.main import create_app
from dsa_practice.storage import StorageGateway
from dsa_practice.submissions.service import SubmissionOrchestrator


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ==================== IN-MEMORY MONGO ====================

_MISSING = object()


def _matches_condition(value, condition):
    present = value is not _MISSING and value is not None
    for op, arg in condition.items():
        if op == "$lt" and not (present and value < arg):
            return False
        if op == "$gte" and not (present and value >= arg):
            return False
        if op == "$in" and value not in arg:
            return False
        if op == "$exists" and (value is not _MISSING) != bool(arg):
            return False
    return True


def matches(doc, query):
    for key, condition in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
            continue
        value = doc.get(key, _MISSING)
        if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            if not _matches_condition(value, condition):
                return False
        elif (None if value is _MISSING else value) != condition:
            return False
    return True


def project(doc, projection):
    if not projection:
        return doc
    included = {k for k, v in projection.items() if v}
    if included:
        out = {k: v for k, v in doc.items() if k in included}
        if projection.get("_id", 1) and "_id" in doc:
            out["_id"] = doc["_id"]
        return out
    return {k: v for k, v in doc.items() if projection.get(k, 1)}


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._limit = None

    def sort(self, key_or_list, direction=None):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        for key, order in reversed(keys):
            self._docs.sort(
                key=lambda d: (d.get(key) is not None, d.get(key)),
                reverse=order == -1,
            )
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs
        for bound in (self._limit, length):
            if bound:
                docs = docs[:bound]
        return docs


class FakeCollection:
    """Just enough of the motor collection API for the storage gateway."""

    def __init__(self, name):
        self.name = name
        self.docs = []
        self.failing = set()

    def fail(self, *operations):
        self.failing.update(operations)

    def _check(self, operation):
        if operation in self.failing:
            raise OperationFailure(f"{self.name}.{operation} failed")

    async def create_index(self, *args, **kwargs):
        self._check("create_index")
        return "index"

    async def find_one(self, query, projection=None):
        self._check("find_one")
        for doc in self.docs:
            if matches(doc, query):
                return project(copy.deepcopy(doc), projection)
        return None

    def find(self, query=None, projection=None):
        self._check("find")
        return FakeCursor([project(copy.deepcopy(d), projection) for d in self.docs if matches(d, query)])

    async def insert_one(self, doc):
        self._check("insert_one")
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query, update, upsert=False):
        self._check("update_one")
        paths = [path for op in update.values() for path in op]
        if len(paths) != len(set(paths)):
            raise WriteError("Updating the path would create a conflict")

        for doc in self.docs:
            if matches(doc, query):
                before = copy.deepcopy(doc)
                self._apply(doc, update, inserting=False)
                return SimpleNamespace(matched_count=1, modified_count=int(before != doc), upserted_id=None)

        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

        doc = {k: v for k, v in query.items() if not k.startswith("$") and not isinstance(v, dict)}
        doc.setdefault("_id", ObjectId())
        self._apply(doc, update, inserting=True)
        self.docs.append(doc)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=doc["_id"])

    @staticmethod
    def _apply(doc, update, inserting):
        if inserting:
            doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
        doc.update(copy.deepcopy(update.get("$set", {})))
        for key, amount in update.get("$inc", {}).items():
            doc[key] = doc.get(key, 0) + amount

    async def delete_one(self, query):
        self._check("delete_one")
        for i, doc in enumerate(self.docs):
            if matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def count_documents(self, query):
        self._check("count_documents")
        return sum(1 for d in self.docs if matches(d, query))

    async def distinct(self, key, query=None):
        self._check("distinct")
        values = []
        for doc in self.docs:
            if matches(doc, query) and key in doc and doc[key] not in values:
                values.append(doc[key])
        return values


class FakeDatabase:
    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


# ==================== FAKE JUDGE ====================

ACCEPTED_ANSWER = "VERDICT: Accepted\nFEEDBACK: Looks correct."
WRONG_ANSWER = "VERDICT: Wrong Answer\nFEEDBACK: Fails on the second test case."


class ScriptedJudge(JudgeClient):
    """Replays queued answers; an exception in the queue is raised instead."""

    def __init__(self, *answers, delay=0):
        self.answers = list(answers) or [ACCEPTED_ANSWER]
        self.delay = delay
        self.calls = []

    async def evaluate(self, prompt, credential=""):
        self.calls.append({"prompt": prompt, "credential": credential})
        if self.delay:
            await asyncio.sleep(self.delay)
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


# ==================== FIXTURES ====================

@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def storage(fake_db):
    return StorageGateway(fake_db)


@pytest.fixture
def judge():
    return ScriptedJudge()


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-secret",
        openrouter_api_key="system-key",
        trial_limit=3,
        judge_timeout_seconds=30,
    )


@pytest.fixture
def orchestrator(storage, judge):
    return SubmissionOrchestrator(storage, judge, trial_limit=3, judge_timeout=30)


def _insert(collection, doc):
    doc.setdefault("_id", ObjectId())
    collection.docs.append(doc)
    return doc


@pytest.fixture
def make_problem(fake_db):
    def _make(**fields):
        doc = {
            "title": "Two Sum",
            "slug": "two-sum",
            "difficulty": "Easy",
            "topic": "Arrays",
            "topic_sequence": 1,
            "description": "Return indices of the two numbers that add up to target.",
            "starter_code": "class Solution {};",
            "test_cases": [
                {"input": "[2,7,11,15], 9", "expected": "[0,1]"},
                {"input": "[3,2,4], 6", "expected": "[1,2]"},
            ],
            "hint_brute": "Try every pair.",
            "hint_optimized": "Use a hash map.",
            "best_solution": "",
        }
        doc.update(fields)
        return _insert(fake_db.problems, doc)
    return _make


@pytest.fixture
def make_user(fake_db):
    def _make(**fields):
        doc = {
            "username": "alice",
            "password_hash": "",
            "api_key": "",
            "trial_usage": 0,
            "solved_count": 0,
            "last_solve_date": None,
        }
        doc.update(fields)
        return _insert(fake_db.users, doc)
    return _make


@pytest.fixture
def app(settings, storage, judge):
    application = create_app(settings=settings, judge=judge)
    application.dependency_overrides[get_storage] = lambda: storage
    return application


@pytest.fixture
def client(app):
    # No context manager: startup would try to reach a real MongoDB
    return TestClient(app)


@pytest.fixture
def auth_headers(app, settings):
    from dsa_practice.auth.tokens import TokenService

    def _headers(user):
        token = TokenService.from_settings(settings).issue_token(str(user["_id"]), user["username"])
        return {"Authorization": f"Bearer {token}"}
    return _headers
