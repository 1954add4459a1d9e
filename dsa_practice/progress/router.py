from typing import List

from fastapi import APIRouter, Depends

from dsa_practice.auth.tokens import Identity
from dsa_practice.core.database import parse_object_id, serialize_many, serialize_mongo, utc_now
from dsa_practice.core.dependencies import get_current_identity, get_storage
from dsa_practice.core.errors import BadInput, Unauthenticated
from dsa_practice.models import MessageResponse, Progress, UpdateNotesRequest
from dsa_practice.storage import StorageGateway

router = APIRouter(tags=["Progress"])


def _resolve_ids(identity: Identity, problem_id: str):
    user_oid = parse_object_id(identity.user_id)
    if user_oid is None:
        raise Unauthenticated("Invalid token claims")
    problem_oid = parse_object_id(problem_id)
    if problem_oid is None:
        raise BadInput("Invalid problem ID")
    return user_oid, problem_oid


@router.get("/progress", response_model=List[Progress])
async def get_progress(
    identity: Identity = Depends(get_current_identity),
    storage: StorageGateway = Depends(get_storage),
):
    user_oid = parse_object_id(identity.user_id)
    if user_oid is None:
        raise Unauthenticated("Invalid token claims")
    return serialize_many(await storage.list_progress(user_oid))


@router.get("/progress/{problem_id}", response_model=Progress)
async def get_problem_progress(
    problem_id: str,
    identity: Identity = Depends(get_current_identity),
    storage: StorageGateway = Depends(get_storage),
):
    """Progress for one problem, or an untouched default when none exists yet"""
    user_oid, problem_oid = _resolve_ids(identity, problem_id)

    progress = await storage.get_progress(user_oid, problem_oid)
    if not progress:
        return Progress(user_id=str(user_oid), problem_id=str(problem_oid))
    return serialize_mongo(progress)


@router.put("/progress/{problem_id}/notes", response_model=MessageResponse)
async def update_notes(
    problem_id: str,
    data: UpdateNotesRequest,
    identity: Identity = Depends(get_current_identity),
    storage: StorageGateway = Depends(get_storage),
):
    user_oid, problem_oid = _resolve_ids(identity, problem_id)
    await storage.save_notes(user_oid, problem_oid, data.notes, utc_now())
    return MessageResponse(message="Notes updated")
