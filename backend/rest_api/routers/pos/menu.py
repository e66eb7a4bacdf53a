"""
Menu endpoints.

Order lines reference menu rows, so a price change here is reflected in
every view that prices items live.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.routers._common import branch_scope, current_staff
from rest_api.services.domain import MenuService
from rest_api.services.permissions import BranchScope, StaffContext
from shared.infrastructure.db import get_db
from shared.utils.admin_schemas import MenuItemCreate, MenuItemOutput, MenuItemUpdate


router = APIRouter(tags=["menu"])


@router.get("/menu", response_model=list[MenuItemOutput])
def list_menu(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> list[MenuItemOutput]:
    return MenuService(db).list_all(ctx, scope, include_inactive=include_inactive)


@router.get("/menu/{item_id}", response_model=MenuItemOutput)
def get_menu_item(
    item_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> MenuItemOutput:
    return MenuService(db).get_by_id(item_id, ctx, scope)


@router.post("/menu", response_model=MenuItemOutput, status_code=status.HTTP_201_CREATED)
def create_menu_item(
    body: MenuItemCreate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> MenuItemOutput:
    return MenuService(db).create(body.model_dump(), ctx, scope)


@router.patch("/menu/{item_id}", response_model=MenuItemOutput)
def update_menu_item(
    item_id: str,
    body: MenuItemUpdate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> MenuItemOutput:
    return MenuService(db).update(item_id, body.model_dump(exclude_unset=True), ctx, scope)


@router.delete("/menu/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_menu_item(
    item_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> None:
    MenuService(db).delete(item_id, ctx, scope)
