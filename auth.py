"""
Shopper and admin authentication.

Passwords are bcrypt hashes (passlib), sessions are signed JWTs (python-jose)
persisted in client storage the way a browser client keeps its session.
Listeners registered with ``on_auth_state_change`` receive
``(event, session)`` for every sign-in, sign-out and account change.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from database import MongoBacked, as_object_id, create_document
from schemas import TABLES, Result, User
from settings import settings
from storage import StorageError
from store import CART_KEY, WISHLIST_KEY

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours
RESET_TOKEN_EXPIRE_MINUTES = 60
MIN_PASSWORD_LENGTH = 6
SESSION_KEY = "storefront_auth"

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
USER_UPDATED = "USER_UPDATED"

AuthListener = Callable[[str, Optional["AuthSession"]], None]


class AuthSession(BaseModel):
    access_token: str
    user: User


def _user_from_doc(doc: dict) -> User:
    return User(
        id=str(doc["_id"]),
        email=doc["email"],
        full_name=doc.get("full_name"),
        role=doc.get("role", "customer"),
    )


class AuthService(MongoBacked):
    def __init__(self, db=None, storage=None, secret_key: Optional[str] = None):
        super().__init__(db)
        self.storage = storage
        self.secret_key = secret_key or settings.jwt_secret_key
        self._listeners: List[AuthListener] = []

    # -- helpers --
    def _users(self):
        return self.db[TABLES["users"]]

    def _issue_session(self, user: User) -> AuthSession:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        token = jwt.encode({"sub": user.id, "role": user.role, "exp": expire},
                           self.secret_key, algorithm=ALGORITHM)
        session = AuthSession(access_token=token, user=user)
        if self.storage is not None:
            try:
                self.storage.set_item(SESSION_KEY, session.model_dump_json())
            except StorageError as e:
                logger.warning("Session kept in memory only: %s", e)
        return session

    def _forget(self, key: str) -> None:
        try:
            self.storage.remove_item(key)
        except StorageError as e:
            logger.warning("Could not clear %s: %s", key, e)

    def _emit(self, event: str, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            listener(event, session)

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def verify_token(self, token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except JWTError:
            return None

    # -- operations --
    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> Result:
        if self.db is None:
            return Result.failure("Database not configured")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            return Result.failure(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        email = (email or "").strip().lower()
        try:
            if self._users().find_one({"email": email}):
                return Result.failure("User already registered")
            user_id = create_document(TABLES["users"], {
                "email": email,
                "password_hash": pwd_context.hash(password),
                "full_name": full_name,
                "role": "customer",
                "is_active": True,
            }, database=self.db)
            user = User(id=user_id, email=email, full_name=full_name)
        except Exception as e:
            logger.error("Sign up error: %s", e)
            return Result.failure(e)

        logger.info("User registered: %s", email)
        session = self._issue_session(user)
        self._emit(SIGNED_IN, session)
        return Result.success({"user": user, "session": session})

    def sign_in(self, email: str, password: str) -> Result:
        if self.db is None:
            return Result.failure("Database not configured")
        email = (email or "").strip().lower()
        try:
            doc = self._users().find_one({"email": email, "is_active": True})
        except Exception as e:
            logger.error("Sign in error: %s", e)
            return Result.failure(e)
        if not doc or not pwd_context.verify(password or "", doc.get("password_hash", "")):
            return Result.failure("Invalid login credentials")

        session = self._issue_session(_user_from_doc(doc))
        self._emit(SIGNED_IN, session)
        return Result.success({"user": session.user, "session": session})

    def admin_login(self, email: str, password: str) -> Result:
        result = self.sign_in(email, password)
        if not result.ok:
            return result
        if result.data["user"].role != "admin":
            self.sign_out()
            return Result.failure("Access denied. Admin privileges required.")
        return result

    def sign_out(self) -> Result:
        if self.storage is not None:
            for key in (SESSION_KEY, CART_KEY, WISHLIST_KEY):
                self._forget(key)
        self._emit(SIGNED_OUT, None)
        return Result.success({"message": "Successfully signed out!"})

    def get_session(self) -> Optional[AuthSession]:
        if self.storage is None:
            return None
        raw = self.storage.get_item(SESSION_KEY)
        if raw is None:
            return None
        try:
            session = AuthSession.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed auth session")
            self._forget(SESSION_KEY)
            return None
        if self.verify_token(session.access_token) is None:
            self._forget(SESSION_KEY)
            return None
        return session

    def get_user(self, token: Optional[str] = None) -> Result:
        if token is None:
            session = self.get_session()
            if session is None:
                return Result.success(None)
            token = session.access_token
        payload = self.verify_token(token)
        if payload is None:
            return Result.failure("Invalid or expired session")
        if self.db is None:
            return Result.failure("Database not configured")
        try:
            doc = self._users().find_one({"_id": as_object_id(payload.get("sub"))})
        except Exception as e:
            logger.error("Get user error: %s", e)
            return Result.failure(e)
        return Result.success(_user_from_doc(doc) if doc else None)

    def reset_password(self, email: str) -> Result:
        """Record a reset token for the account, if there is one.

        The response never reveals whether the email is registered.
        """
        if self.db is None:
            return Result.failure("Database not configured")
        email = (email or "").strip().lower()
        message = {"message": "If an account exists for this email, a reset link has been sent."}
        try:
            doc = self._users().find_one({"email": email})
            if doc is None:
                return Result.success(message)
            token = secrets.token_urlsafe(32)
            self.db[TABLES["password_resets"]].insert_one({
                "user_id": str(doc["_id"]),
                "token": token,
                "expires_at": datetime.now(timezone.utc) + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES),
            })
        except Exception as e:
            logger.error("Reset password error: %s", e)
            return Result.failure(e)
        logger.info("Password reset requested for %s", email)
        self._emit(PASSWORD_RECOVERY, None)
        return Result.success(message)

    def update_password(self, reset_token: str, new_password: str) -> Result:
        if self.db is None:
            return Result.failure("Database not configured")
        if len(new_password or "") < MIN_PASSWORD_LENGTH:
            return Result.failure(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        try:
            resets = self.db[TABLES["password_resets"]]
            record = resets.find_one({"token": reset_token})
            if record is None:
                return Result.failure("Invalid or expired reset token")
            expires_at = record["expires_at"]
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at < datetime.now(timezone.utc):
                resets.delete_one({"_id": record["_id"]})
                return Result.failure("Invalid or expired reset token")
            self._users().update_one(
                {"_id": as_object_id(record["user_id"])},
                {"$set": {"password_hash": pwd_context.hash(new_password),
                          "updated_at": datetime.now(timezone.utc)}},
            )
            resets.delete_one({"_id": record["_id"]})
        except Exception as e:
            logger.error("Update password error: %s", e)
            return Result.failure(e)
        self._emit(USER_UPDATED, self.get_session())
        return Result.success({"message": "Password updated successfully"})
