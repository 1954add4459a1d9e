from fastapi import Depends, Header, Request

from dsa_practice.auth.tokens import Identity, TokenService
from dsa_practice.core.config import Settings, get_settings
from dsa_practice.core.errors import Unauthenticated
from dsa_practice.judge.client import JudgeClient
from dsa_practice.storage import StorageGateway
from dsa_practice.submissions.service import SubmissionOrchestrator

# ==================== DEPENDENCY FUNCTIONS ====================

def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def get_storage(request: Request) -> StorageGateway:
    """Storage gateway over the database opened at startup"""
    return StorageGateway(request.app.state.mongo.db)


async def get_judge(request: Request) -> JudgeClient:
    return request.app.state.judge


def get_token_service(settings: Settings = Depends(get_app_settings)) -> TokenService:
    return TokenService.from_settings(settings)


async def get_orchestrator(
    storage: StorageGateway = Depends(get_storage),
    judge: JudgeClient = Depends(get_judge),
    settings: Settings = Depends(get_app_settings),
) -> SubmissionOrchestrator:
    return SubmissionOrchestrator.from_settings(settings, storage, judge)


async def get_current_identity(
    authorization: str = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Resolve the Bearer token into the caller's identity"""
    if not authorization:
        raise Unauthenticated("Authorization header required")

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        raise Unauthenticated("Invalid authorization format")

    return tokens.validate(token.strip())
