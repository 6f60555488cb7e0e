"""Departments, the parent/child hierarchy graph and department managers."""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Any, Iterable

from sqlalchemy.orm import Session

from intranet.core.exceptions import BadRequestError, ConflictError, HierarchyCycleError, NotFoundError
from intranet.models.department import Department, DepartmentHierarchy, DepartmentManager
from intranet.models.enums import HierarchyType
from intranet.models.user import User
from intranet.schemas.department import DepartmentCreate, DepartmentUpdate

logger = logging.getLogger(__name__)


# ----- pure graph helpers -----


def child_ids(edges: Iterable[Any]) -> set[str]:
    return {edge.child_department_id for edge in edges}


def root_departments(departments: Iterable[Any], edges: Iterable[Any]) -> list[Any]:
    """Departments that are not the child of any edge.

    An edge with a null parent still makes its child a non-root.
    """
    children = child_ids(edges)
    return [department for department in departments if department.id not in children]


def subdepartments(parent_id: str, departments: Iterable[Any], edges: Iterable[Any]) -> list[Any]:
    wanted = [edge.child_department_id for edge in edges if edge.parent_department_id == parent_id]
    by_id = {department.id: department for department in departments}
    return [by_id[child_id] for child_id in wanted if child_id in by_id]


def first_subdepartment_id(parent_id: str, edges: Iterable[Any]) -> str | None:
    for edge in edges:
        if edge.parent_department_id == parent_id:
            return edge.child_department_id
    return None


def _adjacency(edges: Iterable[Any]) -> dict[str, list[str]]:
    graph: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        if edge.parent_department_id:
            graph[edge.parent_department_id].append(edge.child_department_id)
    return graph


def descendant_ids(department_id: str, edges: Iterable[Any]) -> set[str]:
    graph = _adjacency(edges)
    seen: set[str] = set()
    queue = deque(graph.get(department_id, []))
    while queue:
        current = queue.popleft()
        if current in seen:
            continue
        seen.add(current)
        queue.extend(graph.get(current, []))
    return seen


def would_create_cycle(parent_id: str | None, child_id: str, edges: Iterable[Any]) -> bool:
    """True when ``child`` already reaches ``parent`` (or they are the same)."""
    if parent_id is None:
        return False
    if parent_id == child_id:
        return True
    return parent_id in descendant_ids(child_id, edges)


# ----- departments -----


def list_departments(db: Session) -> list[Department]:
    return db.query(Department).order_by(Department.name.asc()).all()


def get_department(db: Session, department_id: str) -> Department:
    department = db.get(Department, department_id)
    if not department:
        raise NotFoundError("department_not_found", details={"department_id": department_id})
    return department


def create_department(db: Session, payload: DepartmentCreate) -> Department:
    if db.query(Department).filter(Department.name == payload.name).first():
        raise ConflictError("department_name_taken", details={"name": payload.name})
    department = Department(**payload.model_dump())
    db.add(department)
    db.commit()
    db.refresh(department)
    logger.info("Department created: %s", department.name)
    return department


def update_department(db: Session, department_id: str, payload: DepartmentUpdate) -> Department:
    department = get_department(db, department_id)
    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] != department.name:
        if db.query(Department).filter(Department.name == changes["name"]).first():
            raise ConflictError("department_name_taken", details={"name": changes["name"]})
    for key, value in changes.items():
        setattr(department, key, value)
    db.commit()
    db.refresh(department)
    return department


def delete_department(db: Session, department_id: str) -> None:
    department = get_department(db, department_id)
    members = db.query(User).filter(User.department_id == department_id).count()
    if members:
        raise ConflictError("department_has_users", details={"department_id": department_id, "users": members})
    db.delete(department)
    db.commit()
    logger.info("Department deleted: %s", department.name)


def list_roots(db: Session) -> list[Department]:
    return root_departments(list_departments(db), list_edges(db))


def list_children(db: Session, department_id: str) -> list[Department]:
    get_department(db, department_id)
    return subdepartments(department_id, list_departments(db), list_edges(db))


def department_members(db: Session, department_id: str) -> list[User]:
    return (
        db.query(User)
        .filter(User.department_id == department_id, User.is_active.is_(True))
        .order_by(User.name.asc())
        .all()
    )


# ----- hierarchy -----


def list_edges(db: Session) -> list[DepartmentHierarchy]:
    return db.query(DepartmentHierarchy).order_by(DepartmentHierarchy.created_at.asc()).all()


def add_edge(
    db: Session,
    *,
    parent_id: str | None,
    child_id: str,
    hierarchy_type: HierarchyType = HierarchyType.subdivision,
) -> DepartmentHierarchy:
    get_department(db, child_id)
    if parent_id is not None:
        get_department(db, parent_id)
    edges = list_edges(db)
    if any(e.parent_department_id == parent_id and e.child_department_id == child_id for e in edges):
        raise ConflictError("hierarchy_edge_exists", details={"parent_department_id": parent_id, "child_department_id": child_id})
    if would_create_cycle(parent_id, child_id, edges):
        raise HierarchyCycleError(str(parent_id), child_id)
    edge = DepartmentHierarchy(
        parent_department_id=parent_id,
        child_department_id=child_id,
        hierarchy_type=hierarchy_type,
    )
    db.add(edge)
    db.commit()
    db.refresh(edge)
    logger.info("Hierarchy edge added: %s -> %s", parent_id, child_id)
    return edge


def remove_edge(db: Session, edge_id: str) -> None:
    edge = db.get(DepartmentHierarchy, edge_id)
    if not edge:
        raise NotFoundError("hierarchy_edge_not_found", details={"edge_id": edge_id})
    db.delete(edge)
    db.commit()


# ----- managers -----


def list_managers(db: Session, department_id: str) -> list[DepartmentManager]:
    return (
        db.query(DepartmentManager)
        .filter(DepartmentManager.department_id == department_id)
        .order_by(DepartmentManager.is_primary.desc(), DepartmentManager.created_at.asc())
        .all()
    )


def add_manager(db: Session, department_id: str, *, user_id: str, role: str = "manager", is_primary: bool = False) -> DepartmentManager:
    get_department(db, department_id)
    if not db.get(User, user_id):
        raise NotFoundError("user_not_found", details={"user_id": user_id})
    existing = (
        db.query(DepartmentManager)
        .filter(DepartmentManager.department_id == department_id, DepartmentManager.user_id == user_id)
        .first()
    )
    if existing:
        raise ConflictError("manager_exists", details={"department_id": department_id, "user_id": user_id})
    if is_primary:
        for current in list_managers(db, department_id):
            current.is_primary = False
    manager = DepartmentManager(department_id=department_id, user_id=user_id, role=role, is_primary=is_primary)
    db.add(manager)
    db.commit()
    db.refresh(manager)
    return manager


def remove_manager(db: Session, manager_id: str) -> None:
    manager = db.get(DepartmentManager, manager_id)
    if not manager:
        raise NotFoundError("manager_not_found", details={"manager_id": manager_id})
    db.delete(manager)
    db.commit()


def manager_user_ids(db: Session, department_id: str) -> list[str]:
    ids = [manager.user_id for manager in list_managers(db, department_id)]
    if not ids:
        department = db.get(Department, department_id)
        if department and department.head_id:
            ids = [department.head_id]
    return ids


def require_department(db: Session, department_id: str | None, *, field: str = "department_id") -> Department | None:
    if department_id is None:
        return None
    department = db.get(Department, department_id)
    if not department:
        raise BadRequestError("unknown_department", details={field: department_id})
    return department
