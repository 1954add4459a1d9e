from typing import List

from fastapi import APIRouter, Depends

from dsa_practice.auth.tokens import Identity
from dsa_practice.core.database import parse_object_id, serialize_many, serialize_mongo, utc_now
from dsa_practice.core.dependencies import get_current_identity, get_storage
from dsa_practice.core.errors import BadInput, Unauthenticated, Unauthorized
from dsa_practice.models import Comment, CreateCommentRequest, MessageResponse
from dsa_practice.storage import StorageGateway

router = APIRouter(tags=["Comments"])


@router.get("/comments/{problem_id}", response_model=List[Comment])
async def get_comments(problem_id: str, storage: StorageGateway = Depends(get_storage)):
    """Discussion for a problem, newest first"""
    problem_oid = parse_object_id(problem_id)
    if problem_oid is None:
        raise BadInput("Invalid problem ID")
    return serialize_many(await storage.list_comments(problem_oid))


@router.post("/comments", response_model=Comment, status_code=201)
async def create_comment(
    data: CreateCommentRequest,
    identity: Identity = Depends(get_current_identity),
    storage: StorageGateway = Depends(get_storage),
):
    user_oid = parse_object_id(identity.user_id)
    if user_oid is None:
        raise Unauthenticated("Invalid token claims")
    problem_oid = parse_object_id(data.problem_id)
    if problem_oid is None:
        raise BadInput("Invalid problem ID")

    comment = {
        "problem_id": problem_oid,
        "user_id": user_oid,
        "username": identity.username,
        "content": data.content,
        "likes": 0,
        "created_at": utc_now(),
    }
    await storage.insert_comment(comment)
    return serialize_mongo(comment)


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: str,
    identity: Identity = Depends(get_current_identity),
    storage: StorageGateway = Depends(get_storage),
):
    """Only the author may delete a comment"""
    comment_oid = parse_object_id(comment_id)
    if comment_oid is None:
        raise BadInput("Invalid comment ID")
    user_oid = parse_object_id(identity.user_id)
    if user_oid is None:
        raise Unauthenticated("Invalid token claims")

    if not await storage.delete_comment(comment_oid, user_oid):
        raise Unauthorized("Comment not found or unauthorized")
    return MessageResponse(message="Comment deleted")
