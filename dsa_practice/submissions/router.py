from typing import List

from fastapi import APIRouter, Depends

from dsa_practice.auth.tokens import Identity
from dsa_practice.core.database import parse_object_id, serialize_many
from dsa_practice.core.dependencies import get_current_identity, get_orchestrator, get_storage
from dsa_practice.core.errors import BadInput, Unauthenticated
from dsa_practice.models import Submission, SubmitRequest, SubmitResponse
from dsa_practice.storage import StorageGateway
from dsa_practice.submissions.service import SubmissionOrchestrator

router = APIRouter(tags=["Submissions"])


@router.post("/submit", response_model=SubmitResponse)
async def submit_code(
    data: SubmitRequest,
    identity: Identity = Depends(get_current_identity),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """
    Judge a solution with the AI judge.

    Send:
        {
          "problemId": "<24 hex chars>",
          "code":      "int main() { ... }",
          "language":  "cpp"        // ignored, stored as cpp
        }

    Users without their own OpenRouter key get a limited number of trial
    submissions on the system key; past that the answer is 403 with
    code TRIAL_LIMIT_REACHED.
    """
    result = await orchestrator.submit(identity.user_id, data.problem_id, data.code)
    return SubmitResponse(**result.to_dict())


@router.get("/submissions/{problem_id}", response_model=List[Submission])
async def get_submissions(
    problem_id: str,
    identity: Identity = Depends(get_current_identity),
    storage: StorageGateway = Depends(get_storage),
):
    user_oid = parse_object_id(identity.user_id)
    if user_oid is None:
        raise Unauthenticated("Invalid token claims")
    problem_oid = parse_object_id(problem_id)
    if problem_oid is None:
        raise BadInput("Invalid problem ID")

    return serialize_many(await storage.list_submissions(user_oid, problem_oid))
