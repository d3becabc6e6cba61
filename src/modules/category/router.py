"""Category API router — order categories managed by owners."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.modules.category.schemas import (
    CategoryActiveUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
)
from src.modules.category.service import CategoryService
from src.modules.identity.dependencies import get_principal
from src.modules.identity.roles import Principal

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(
    include_inactive: bool = Query(False),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Active categories; owners may include inactive ones."""
    active_only = not (include_inactive and principal.is_owner)
    categories = await CategoryService(db).list_categories(active_only=active_only)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    category = await CategoryService(db).get_category(category_id)
    return CategoryResponse.model_validate(category)


@router.post("/", response_model=CategoryResponse, status_code=201)
async def create_category(
    body: CategoryCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    category = await CategoryService(db).create_category(principal, body.name, body.slug)
    return CategoryResponse.model_validate(category)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    category = await CategoryService(db).update_category(
        principal, category_id, name=body.name, slug=body.slug
    )
    return CategoryResponse.model_validate(category)


@router.put("/{category_id}/active", response_model=CategoryResponse)
async def set_category_active(
    category_id: uuid.UUID,
    body: CategoryActiveUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    category = await CategoryService(db).set_category_active(
        principal, category_id, body.is_active
    )
    return CategoryResponse.model_validate(category)
