import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.models.user import User
from portal.schemas.users import UserCreate
from portal.utils.metrics import metrics

logger = logging.getLogger(__name__)


class UserNotFoundError(LookupError):
    pass


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_username(self, username: str) -> User | None:
        return self.db.query(User).filter(User.username == username).one_or_none()

    def get_user(self, username: str) -> User:
        user = self.get_by_username(username)
        if user is None:
            raise UserNotFoundError(f"User {username} is not found.")
        return user

    def create_user_if_not_exists(self, username: str, value: UserCreate) -> tuple[User, bool]:
        """
        Insert the user only if no record with this username exists.
        Returns (user, created). An existing record is returned untouched.
        """
        user = self.get_by_username(username)
        if user:
            return user, False
        user = User(
            username=username,
            email=value.email,
            password=value.password,
            grouplist=list(value.grouplist),
            extension=dict(value.extension),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent first login for the same identity: the other insert won.
            self.db.rollback()
            return self.get_user(username), False
        self.db.refresh(user)
        metrics.inc_users_created()
        logger.info("user_created", extra={"username": username})
        return user, True
