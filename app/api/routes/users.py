"""
User Profile Routes.
"""
from fastapi import APIRouter, HTTPException, Response, status

from app import crud
from app.api.deps import CurrentUser, SessionDep
from app.core.logging import get_logger
from app.core.security import verify_password
from app.models import UpdatePassword, UserProfile, UserPublic, UserUpdate

logger = get_logger(__name__)

router = APIRouter()


@router.get("/profile", response_model=UserProfile)
async def get_profile(session: SessionDep, current_user: CurrentUser) -> UserProfile:
    """Current user's profile with transaction and budget counts."""
    return UserProfile(
        **UserPublic.model_validate(current_user).model_dump(exclude={"full_name"}),
        total_transactions=crud.count_user_transactions(
            session=session, user_id=current_user.id
        ),
        total_budgets=crud.count_user_budgets(session=session, user_id=current_user.id),
    )


@router.put("/profile", response_model=UserPublic)
async def update_profile(
    user_in: UserUpdate,
    session: SessionDep,
    current_user: CurrentUser,
) -> UserPublic:
    user = crud.update_user(session=session, db_user=current_user, user_in=user_in)
    return UserPublic.model_validate(user)


@router.put("/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    body: UpdatePassword,
    session: SessionDep,
    current_user: CurrentUser,
) -> Response:
    if not verify_password(body.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current password is incorrect",
        )
    crud.change_password(session=session, db_user=current_user, new_password=body.new_password)
    logger.info(f"Password changed for user {current_user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_account(session: SessionDep, current_user: CurrentUser) -> Response:
    """Deactivate the current account. Data is kept; login is refused afterwards."""
    crud.deactivate_user(session=session, db_user=current_user)
    logger.info(f"Deactivated user {current_user.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
