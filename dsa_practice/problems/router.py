from typing import List, Optional

from fastapi import APIRouter, Depends

from dsa_practice.core.database import parse_object_id, serialize_many, serialize_mongo
from dsa_practice.core.dependencies import get_storage
from dsa_practice.core.errors import BadInput, NotFound
from dsa_practice.models import Problem, ProblemListItem
from dsa_practice.storage import StorageGateway

router = APIRouter(tags=["Problems"])


@router.get("/problems", response_model=List[ProblemListItem])
async def get_problems(
    topic: Optional[str] = None,
    difficulty: Optional[str] = None,
    storage: StorageGateway = Depends(get_storage),
):
    """List problems ordered by topic sequence, then title"""
    problems = await storage.list_problems(topic=topic, difficulty=difficulty)
    return serialize_many(problems)


@router.get("/problems/{problem_id}", response_model=Problem)
async def get_problem(problem_id: str, storage: StorageGateway = Depends(get_storage)):
    problem_oid = parse_object_id(problem_id)
    if problem_oid is None:
        raise BadInput("Invalid problem ID")

    problem = await storage.get_problem(problem_oid)
    if not problem:
        raise NotFound("Problem not found")
    return serialize_mongo(problem)


@router.get("/topics", response_model=List[str])
async def get_topics(storage: StorageGateway = Depends(get_storage)):
    return [t for t in await storage.list_topics() if t]
