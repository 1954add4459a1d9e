"""
Submission pipeline

    Validating -> QuotaCheck -> Judging -> Persisting -> StatsUpdate -> Responded

Early exits are raised as AppError subclasses and classified into a
SubmissionOutcome for logging. Nothing is written before the judge has
answered, apart from the trial-usage increment.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from bson import ObjectId
from pydantic import ValidationError

from dsa_practice.core.config import Settings
from dsa_practice.core.database import parse_object_id, serialize_mongo, utc_now
from dsa_practice.core.errors import (
    AppError, BadInput, JudgeError, JudgeTimeout, NotFound, PersistError, QuotaExceeded,
)
from dsa_practice.judge.client import JudgeClient
from dsa_practice.judge.parser import EvaluationResult, empty_response_result, parse_evaluation_response
from dsa_practice.judge.prompts import build_evaluation_prompt
from dsa_practice.models import Problem, User
from dsa_practice.storage import StorageGateway

logger = logging.getLogger(__name__)

# Every submission is stored as C++ regardless of the language sent by the client
SUBMISSION_LANGUAGE = "cpp"


class SubmissionOutcome(str, Enum):
    RESPONDED = "responded"
    BAD_INPUT = "rejected_bad_input"
    NOT_FOUND = "rejected_not_found"
    QUOTA_EXCEEDED = "rejected_quota_exceeded"
    JUDGE_ERROR = "failed_judge_error"
    PERSIST_ERROR = "failed_persist_error"


_OUTCOME_BY_ERROR = (
    (BadInput, SubmissionOutcome.BAD_INPUT),
    (NotFound, SubmissionOutcome.NOT_FOUND),
    (QuotaExceeded, SubmissionOutcome.QUOTA_EXCEEDED),
    (JudgeError, SubmissionOutcome.JUDGE_ERROR),
    (PersistError, SubmissionOutcome.PERSIST_ERROR),
)


def classify_error(error: AppError) -> Optional[SubmissionOutcome]:
    for error_type, outcome in _OUTCOME_BY_ERROR:
        if isinstance(error, error_type):
            return outcome
    return None


def trial_limit_message(limit: int) -> str:
    return (
        f"Trial limit reached ({limit}/{limit}). "
        "Please add your OpenRouter API Key in settings to continue."
    )


class SubmissionOrchestrator:
    def __init__(
        self,
        storage: StorageGateway,
        judge: JudgeClient,
        trial_limit: int = 3,
        judge_timeout: float = 30,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.judge = judge
        self.trial_limit = trial_limit
        self.judge_timeout = judge_timeout
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, storage: StorageGateway, judge: JudgeClient):
        return cls(
            storage,
            judge,
            trial_limit=settings.trial_limit,
            judge_timeout=settings.judge_timeout_seconds,
        )

    async def submit(self, user_id: str, problem_id: str, code: str) -> EvaluationResult:
        try:
            result = await self._run(user_id, problem_id, code)
        except AppError as e:
            outcome = classify_error(e)
            logger.info(
                "Submission user=%s problem=%s outcome=%s error=%s",
                user_id, problem_id, outcome.value if outcome else type(e).__name__, e.message,
            )
            raise

        logger.info(
            "Submission user=%s problem=%s outcome=%s verdict=%s",
            user_id, problem_id, SubmissionOutcome.RESPONDED.value, result.verdict,
        )
        return result

    async def _run(self, user_id: str, problem_id: str, code: str) -> EvaluationResult:
        # Validating
        user_oid = parse_object_id(user_id)
        if user_oid is None:
            raise BadInput("Invalid user ID")
        problem_oid = parse_object_id(problem_id)
        if problem_oid is None:
            raise BadInput("Invalid problem ID")
        if not code or not code.strip():
            raise BadInput("Code is required")

        problem_doc = await self.storage.get_problem(problem_oid)
        if not problem_doc:
            raise NotFound("Problem not found")
        try:
            problem = Problem.model_validate(serialize_mongo(problem_doc))
        except ValidationError as e:
            logger.error("Stored problem %s is malformed: %s", problem_id, e)
            raise PersistError("Failed to read problem") from e

        user_doc = await self.storage.get_user(user_oid)
        if not user_doc:
            raise NotFound("User not found")
        try:
            user = User.model_validate(serialize_mongo(user_doc))
        except ValidationError as e:
            logger.error("Stored user %s is malformed: %s", user_id, e)
            raise PersistError("Failed to read user") from e

        credential = await self._check_quota(user_oid, user)

        result = await self._judge(problem, code, credential)

        # Persisting
        now = self.clock()
        await self.storage.insert_submission({
            "user_id": user_oid,
            "problem_id": problem_oid,
            "code": code,
            "language": SUBMISSION_LANGUAGE,
            "verdict": result.verdict,
            "feedback": result.feedback,
            "created_at": now,
        })
        await self.storage.record_attempt(
            user_oid, problem_oid, code, SUBMISSION_LANGUAGE, result.passed, now
        )

        # StatsUpdate: recount from progress instead of incrementing
        if result.passed:
            solved = await self.storage.count_solved(user_oid)
            await self.storage.update_solve_stats(user_oid, solved, now)

        return result

    async def _check_quota(self, user_oid: ObjectId, user: User) -> str:
        """Return the credential to judge with, or raise QuotaExceeded."""
        if user.has_api_key:
            return user.api_key

        if user.trial_usage >= self.trial_limit:
            raise QuotaExceeded(trial_limit_message(self.trial_limit))

        try:
            consumed = await self.storage.consume_trial(user_oid, self.trial_limit)
        except PersistError as e:
            # Fail open: a lost increment only gives away a free judge call
            logger.warning("Failed to increment trial usage for user %s: %s", user.id, e.message)
            return ""

        if not consumed:
            # A concurrent submission took the last trial use
            raise QuotaExceeded(trial_limit_message(self.trial_limit))
        return ""

    async def _judge(self, problem: Problem, code: str, credential: str) -> EvaluationResult:
        prompt = build_evaluation_prompt(problem, code)
        try:
            raw = await asyncio.wait_for(self.judge.evaluate(prompt, credential), timeout=self.judge_timeout)
        except asyncio.TimeoutError:
            raise JudgeTimeout(f"judge did not respond within {self.judge_timeout} seconds")

        if raw is None:
            return empty_response_result()
        return parse_evaluation_response(raw)
