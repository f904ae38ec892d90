"""
Category Routes.

Categories are predefined and shared by all users; they are read-only here.
"""
from fastapi import APIRouter

from app import crud
from app.api.deps import SessionDep
from app.models import CategoryPublic, TransactionType

router = APIRouter()


@router.get("", response_model=list[CategoryPublic])
async def list_categories(session: SessionDep) -> list[CategoryPublic]:
    return [
        CategoryPublic.model_validate(c) for c in crud.get_categories(session=session)
    ]


@router.get("/type/{type}", response_model=list[CategoryPublic])
async def list_categories_by_type(
    type: TransactionType, session: SessionDep
) -> list[CategoryPublic]:
    return [
        CategoryPublic.model_validate(c)
        for c in crud.get_categories(session=session, type=type)
    ]
