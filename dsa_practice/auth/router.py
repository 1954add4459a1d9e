from fastapi import APIRouter, Depends

from dsa_practice.auth.tokens import Identity, TokenService, hash_password, verify_password
from dsa_practice.core.config import Settings
from dsa_practice.core.database import parse_object_id, serialize_mongo, utc_now
from dsa_practice.core.dependencies import (
    get_app_settings, get_current_identity, get_storage, get_token_service,
)
from dsa_practice.core.errors import NotFound, Unauthenticated
from dsa_practice.models import (
    ApiKeyRequest, AuthResponse, LoginRequest, MessageResponse, RegisterRequest, User, UserProfile,
)
from dsa_practice.storage import StorageGateway

router = APIRouter(tags=["Auth"])


async def _load_user(storage: StorageGateway, identity: Identity) -> User:
    user_oid = parse_object_id(identity.user_id)
    user_doc = await storage.get_user(user_oid) if user_oid else None
    if not user_doc:
        raise NotFound("User not found")
    return User.model_validate(serialize_mongo(user_doc))


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
async def register(
    data: RegisterRequest,
    storage: StorageGateway = Depends(get_storage),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
):
    """Create an account and log it in"""
    user_doc = await storage.create_user(
        username=data.username,
        password_hash=hash_password(data.password),
        api_key=data.api_key.strip(),
        now=utc_now(),
    )
    user = User.model_validate(serialize_mongo(user_doc))

    return AuthResponse(
        token=tokens.issue_token(user.id, user.username),
        user=UserProfile.from_user(user, settings.trial_limit),
    )


@router.post("/auth/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    storage: StorageGateway = Depends(get_storage),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
):
    user_doc = await storage.get_user_by_username(data.username.strip())
    if not user_doc or not verify_password(data.password, user_doc.get("password_hash", "")):
        raise Unauthenticated("Invalid credentials")

    user = User.model_validate(serialize_mongo(user_doc))
    return AuthResponse(
        token=tokens.issue_token(user.id, user.username),
        user=UserProfile.from_user(user, settings.trial_limit),
    )


@router.get("/profile", response_model=UserProfile)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    storage: StorageGateway = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    user = await _load_user(storage, identity)
    return UserProfile.from_user(user, settings.trial_limit)


@router.put("/apikey", response_model=MessageResponse)
async def update_api_key(
    data: ApiKeyRequest,
    identity: Identity = Depends(get_current_identity),
    storage: StorageGateway = Depends(get_storage),
):
    """Set, or clear with an empty string, the caller's personal OpenRouter key"""
    user_oid = parse_object_id(identity.user_id)
    if user_oid is None or not await storage.set_api_key(user_oid, data.api_key.strip()):
        raise NotFound("User not found")
    return MessageResponse(message="API key updated")
