# Token issuance and validation for the API.
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import jwt, JWTError
from passlib.context import CryptContext

from dsa_practice.core.config import Settings
from dsa_practice.core.errors import Unauthenticated

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognised hash format
        return False


@dataclass(frozen=True)
class Identity:
    user_id: str
    username: str


class TokenService:
    def __init__(self, secret: str, expire_hours: int = 24 * 7):
        self.secret = secret
        self.expire_hours = expire_hours

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(settings.jwt_secret, settings.jwt_expire_hours)

    def issue_token(self, user_id: str, username: str) -> str:
        payload = {
            "user_id": user_id,
            "username": username,
            "exp": datetime.now(timezone.utc) + timedelta(hours=self.expire_hours),
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def validate(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError:
            raise Unauthenticated("Invalid or expired token")

        user_id = payload.get("user_id")
        if not user_id:
            raise Unauthenticated("Invalid token claims")
        return Identity(user_id=user_id, username=payload.get("username", ""))
