# src/auth.py
"""Authentication manager."""

from typing import Optional

import bcrypt
import structlog
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from src.actions.results import ActionResult
from src.db.models import User
from src.schemas import SignInSchema, SignUpSchema

logger = structlog.get_logger(__name__)

TOKEN_SALT = "journal-api-token"


class AuthManager:
    """Handle user authentication."""

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash password with bcrypt."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

    @staticmethod
    def verify_password(password: str, hashed: str) -> bool:
        """Verify password against hash."""
        return bcrypt.checkpw(password.encode(), hashed.encode())

    @staticmethod
    def find_user(session: Session, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return session.exec(stmt).first()

    @staticmethod
    def authenticate(session: Session, email: str, password: str) -> User | None:
        """Authenticate user."""
        user = AuthManager.find_user(session, email)

        if user and AuthManager.verify_password(password, user.hashed_password):
            return user
        return None

    @staticmethod
    def sign_up(session: Session, values: dict) -> ActionResult:
        """Create a new user from sign-up form values."""
        try:
            data = SignUpSchema.model_validate(values)
        except ValidationError as exc:
            return ActionResult.invalid(exc)

        if AuthManager.find_user(session, data.email):
            return ActionResult.fail("Email already registered.", kind="conflict")

        user = User(
            email=data.email.lower(),
            hashed_password=AuthManager.hash_password(data.password),
        )
        try:
            session.add(user)
            session.commit()
            session.refresh(user)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("sign_up_failed", email=data.email)
            return ActionResult.backend(exc)

        logger.info("user_signed_up", user_id=user.id)
        return ActionResult.ok({"user_id": user.id, "email": user.email})

    @staticmethod
    def sign_in(session: Session, values: dict) -> ActionResult:
        """Check credentials; data carries the user id on success."""
        try:
            data = SignInSchema.model_validate(values)
        except ValidationError as exc:
            return ActionResult.invalid(exc)

        user = AuthManager.authenticate(session, data.email, data.password)
        if user is None:
            logger.info("sign_in_rejected", email=data.email)
            return ActionResult.fail("Invalid credentials.", kind="auth")

        return ActionResult.ok({"user_id": user.id, "email": user.email})

    @staticmethod
    def issue_token(secret_key: str, user_id: str) -> str:
        """Signed bearer token carrying the user id."""
        return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT).dumps({"uid": user_id})

    @staticmethod
    def resolve_token(secret_key: str, token: str, max_age: int) -> Optional[str]:
        """User id from a bearer token, None if forged or expired."""
        serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        try:
            payload = serializer.loads(token, max_age=max_age)
        except SignatureExpired:
            logger.info("token_expired")
            return None
        except BadSignature:
            logger.warning("token_rejected")
            return None
        return payload.get("uid") if isinstance(payload, dict) else None
