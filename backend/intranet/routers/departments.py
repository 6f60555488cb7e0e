"""Department, hierarchy and manager endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.schemas.department import (
    DepartmentCreate,
    DepartmentOut,
    DepartmentUpdate,
    HierarchyEdgeCreate,
    HierarchyEdgeOut,
    ManagerCreate,
    ManagerOut,
)
from intranet.schemas.user import UserBrief
from intranet.services import departments as service

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])

_manage = Depends(require_permission("manage_departments"))


@router.get("/departments", response_model=list[DepartmentOut])
def get_departments(db: Session = Depends(get_db)) -> list[DepartmentOut]:
    return [DepartmentOut.model_validate(d) for d in service.list_departments(db)]


@router.post("/departments", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED, dependencies=[_manage])
def post_department(payload: DepartmentCreate, db: Session = Depends(get_db)) -> DepartmentOut:
    return DepartmentOut.model_validate(service.create_department(db, payload))


@router.get("/departments/roots", response_model=list[DepartmentOut])
def get_root_departments(db: Session = Depends(get_db)) -> list[DepartmentOut]:
    return [DepartmentOut.model_validate(d) for d in service.list_roots(db)]


@router.get("/departments/{department_id}", response_model=DepartmentOut)
def get_department(department_id: str, db: Session = Depends(get_db)) -> DepartmentOut:
    return DepartmentOut.model_validate(service.get_department(db, department_id))


@router.patch("/departments/{department_id}", response_model=DepartmentOut, dependencies=[_manage])
def patch_department(department_id: str, payload: DepartmentUpdate, db: Session = Depends(get_db)) -> DepartmentOut:
    return DepartmentOut.model_validate(service.update_department(db, department_id, payload))


@router.delete("/departments/{department_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_department(department_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_department(db, department_id)


@router.get("/departments/{department_id}/children", response_model=list[DepartmentOut])
def get_child_departments(department_id: str, db: Session = Depends(get_db)) -> list[DepartmentOut]:
    return [DepartmentOut.model_validate(d) for d in service.list_children(db, department_id)]


@router.get("/departments/{department_id}/members", response_model=list[UserBrief])
def get_department_members(department_id: str, db: Session = Depends(get_db)) -> list[UserBrief]:
    return [UserBrief.model_validate(u) for u in service.department_members(db, department_id)]


@router.get("/department-hierarchy", response_model=list[HierarchyEdgeOut])
def get_hierarchy(db: Session = Depends(get_db)) -> list[HierarchyEdgeOut]:
    return [HierarchyEdgeOut.model_validate(edge) for edge in service.list_edges(db)]


@router.post("/department-hierarchy", response_model=HierarchyEdgeOut, status_code=status.HTTP_201_CREATED, dependencies=[_manage])
def post_hierarchy_edge(payload: HierarchyEdgeCreate, db: Session = Depends(get_db)) -> HierarchyEdgeOut:
    edge = service.add_edge(
        db,
        parent_id=payload.parent_department_id,
        child_id=payload.child_department_id,
        hierarchy_type=payload.hierarchy_type,
    )
    return HierarchyEdgeOut.model_validate(edge)


@router.delete("/department-hierarchy/{edge_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[_manage])
def remove_hierarchy_edge(edge_id: str, db: Session = Depends(get_db)) -> None:
    service.remove_edge(db, edge_id)


@router.get("/departments/{department_id}/managers", response_model=list[ManagerOut])
def get_managers(department_id: str, db: Session = Depends(get_db)) -> list[ManagerOut]:
    return [ManagerOut.model_validate(m) for m in service.list_managers(db, department_id)]


@router.post(
    "/departments/{department_id}/managers",
    response_model=ManagerOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_manage],
)
def post_manager(department_id: str, payload: ManagerCreate, db: Session = Depends(get_db)) -> ManagerOut:
    manager = service.add_manager(
        db,
        department_id,
        user_id=payload.user_id,
        role=payload.role,
        is_primary=payload.is_primary,
    )
    return ManagerOut.model_validate(manager)


@router.delete(
    "/departments/{department_id}/managers/{manager_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[_manage],
)
def remove_manager(department_id: str, manager_id: str, db: Session = Depends(get_db)) -> None:
    service.get_department(db, department_id)
    service.remove_manager(db, manager_id)
