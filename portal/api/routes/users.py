"""
User controller (v2).
Accessor failures are never formatted here: they are wrapped into the
"unknown" error kind and left to the app-level error handler.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.core.errors import unknown
from portal.db.session import get_db
from portal.schemas.users import Identity, UserCreate, UserOut
from portal.services.auth.jwt import get_current_identity
from portal.services.users.service import UserService

router = APIRouter(prefix="/api/v2/users", tags=["users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def create_user_if_user_not_exist(
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
) -> Identity:
    """
    Make sure the authenticated identity has a user record, then let the
    request through. Existing records are left as they are.
    """
    value = UserCreate(
        username=identity.username,
        email=identity.email,
        # only used for token generation
        password=identity.oid,
        grouplist=[],
        extension={},
    )
    try:
        service.create_user_if_not_exists(identity.username, value)
    except Exception as e:
        raise unknown(e) from e
    # TODO: sync grouplist from the group manager once it exposes a per-user query.
    return identity


@router.get("/{username}", response_model=UserOut, dependencies=[Depends(get_current_identity)])
def get_user(username: str, service: UserService = Depends(get_user_service)):
    try:
        user = service.get_user(username)
    except Exception as e:
        raise unknown(e) from e
    return UserOut.model_validate(user)
