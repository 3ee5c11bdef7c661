# app/services/user_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import UserUpdate, UserRoleUpdate

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - provision profiles for verified phones
      - enforce app rules (phone is immutable, role constraints)
      - orchestrate repository operations
      - map domain errors to HTTP errors
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Login provisioning -----

    def get_or_create_by_phone(
        self,
        session: Session,
        phone: str,
        admin_phones: set[str] | frozenset[str] = frozenset(),
    ) -> User:
        """
        Return the profile for a verified phone, creating it on first login.

        Phones listed in ADMIN_PHONES start with role "admin"; everybody
        else is a "user". Existing roles are never changed here.
        """
        user = self.repo.get_by_phone(session, phone)
        if user:
            return user

        role = "admin" if phone in admin_phones else "user"
        try:
            user = self.repo.create(session, User(phone=phone, role=role))
        except IntegrityError:
            # concurrent first login for the same phone
            session.rollback()
            user = self.repo.get_by_phone(session, phone)
            if user is None:
                raise
            return user

        logger.info("Provisioned %s profile for phone=%s", role, phone)
        return user

    # ----- Self profile -----

    def get_me(self, current_user: User) -> User:
        """Return the current authenticated user."""
        return current_user

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits (name, email).
        """
        if payload.name is not None:
            current_user.name = payload.name
        if payload.email is not None:
            current_user.email = str(payload.email).lower()

        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(self, session: Session, skip: int, limit: int) -> list[User]:
        """List users with pagination (admin only)."""
        return self.repo.list_users(session, skip=skip, limit=limit)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Get a user by id (admin only).

        Raises:
            HTTPException(404): if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def update_role(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        user = self.get_user(session, user_id)
        user.role = payload.role
        return self.repo.update(session, user)
