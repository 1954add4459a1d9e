from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ==================== ENUMS ====================

class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ProgressStatus(str, Enum):
    UNSOLVED = "unsolved"
    ATTEMPTED = "attempted"
    SOLVED = "solved"


def normalize_difficulty(value):
    """Accept stored difficulties in any casing ('easy', 'HARD')."""
    if isinstance(value, str):
        for member in Difficulty:
            if member.value.lower() == value.strip().lower():
                return member
    return value


class Verdict(str, Enum):
    ACCEPTED = "Accepted"
    WRONG_ANSWER = "Wrong Answer"
    RUNTIME_ERROR = "Runtime Error"
    COMPILATION_ERROR = "Compilation Error"


class ApiModel(BaseModel):
    """snake_case in Python and Mongo, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== PROBLEM MODELS ====================

class TestCase(ApiModel):
    input: str = ""
    expected: str = ""


class ProblemListItem(ApiModel):
    id: str
    title: str
    slug: str = ""
    difficulty: Difficulty
    topic: str = ""
    topic_sequence: int = 0

    @field_validator("difficulty", mode="before")
    @classmethod
    def coerce_difficulty(cls, v):
        return normalize_difficulty(v)


class Problem(ApiModel):
    id: str
    title: str
    slug: str = ""
    difficulty: Difficulty
    topic: str = ""
    description: str = ""
    starter_code: str = ""
    test_cases: List[TestCase] = []
    hint_brute: str = ""
    hint_optimized: str = ""
    best_solution: str = ""
    created_at: Optional[datetime] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def coerce_difficulty(cls, v):
        return normalize_difficulty(v)


# ==================== USER MODELS ====================

class User(ApiModel):
    id: str
    username: str
    password_hash: str = Field(default="", exclude=True)
    api_key: Optional[str] = Field(default="", exclude=True)
    trial_usage: int = 0
    solved_count: int = 0
    last_solve_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


class UserProfile(ApiModel):
    id: str
    username: str
    has_api_key: bool
    trial_usage: int
    trial_limit: int
    solved_count: int
    last_solve_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User, trial_limit: int) -> "UserProfile":
        return cls(
            id=user.id,
            username=user.username,
            has_api_key=user.has_api_key,
            trial_usage=user.trial_usage,
            trial_limit=trial_limit,
            solved_count=user.solved_count,
            last_solve_date=user.last_solve_date,
            created_at=user.created_at,
        )


class RegisterRequest(ApiModel):
    username: str = Field(min_length=3, max_length=30)
    password: str = Field(min_length=6)
    api_key: str = ""

    @field_validator("username")
    @classmethod
    def strip_username(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v


class LoginRequest(ApiModel):
    username: str
    password: str


class ApiKeyRequest(ApiModel):
    api_key: str = ""


class AuthResponse(ApiModel):
    token: str
    user: UserProfile


# ==================== PROGRESS MODELS ====================

class Progress(ApiModel):
    id: Optional[str] = None
    user_id: str
    problem_id: str
    status: ProgressStatus = ProgressStatus.UNSOLVED
    code: str = ""
    language: str = ""
    attempts: int = 0
    successful_submissions: int = 0
    notes: str = ""
    updated_at: Optional[datetime] = None
    last_attempted_at: Optional[datetime] = None


class UpdateNotesRequest(ApiModel):
    notes: str = ""


# ==================== SUBMISSION MODELS ====================

class Submission(ApiModel):
    id: str
    user_id: str
    problem_id: str
    code: str
    language: str
    verdict: str
    feedback: str
    created_at: datetime


class SubmitRequest(ApiModel):
    problem_id: str
    code: str
    language: str = ""
    # Accepted for client compatibility; the stored user key is authoritative
    api_key: str = ""


class SubmitResponse(ApiModel):
    verdict: str
    feedback: str
    passed: bool


# ==================== COMMENT MODELS ====================

class Comment(ApiModel):
    id: str
    problem_id: str
    user_id: str
    username: str
    content: str
    likes: int = 0
    created_at: datetime


class CreateCommentRequest(ApiModel):
    problem_id: str
    content: str = Field(min_length=1)


class MessageResponse(ApiModel):
    message: str
