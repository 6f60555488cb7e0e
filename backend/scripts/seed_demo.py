"""Seed departments, a first admin, an IT helpdesk and default settings."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from intranet.core.logging import setup_logging  # noqa: E402
from intranet.core.rbac import PERMISSION_CATALOG  # noqa: E402
from intranet.core.security import hash_password  # noqa: E402
from intranet.db.session import SessionLocal  # noqa: E402
from intranet.models.department import Department, DepartmentHierarchy  # noqa: E402
from intranet.models.enums import HierarchyType, TicketPriority, UserRole  # noqa: E402
from intranet.models.helpdesk import SlaPolicy  # noqa: E402
from intranet.models.role import Role, RolePermission  # noqa: E402
from intranet.models.settings import SystemSetting  # noqa: E402
from intranet.models.user import User  # noqa: E402
from intranet.schemas.helpdesk import HelpdeskCreate  # noqa: E402
from intranet.services.helpdesks import create_helpdesk  # noqa: E402
from intranet.services.settings import SETTING_DEFAULTS, setting_category  # noqa: E402

logger = logging.getLogger(__name__)

DEPARTMENTS = [
    {"name": "IT", "description": "Infrastructure, devices and accounts", "color": "#3b82f6"},
    {"name": "Human Resources", "description": "People operations", "color": "#ec4899"},
    {"name": "Finance", "description": "Payroll, purchasing and expenses", "color": "#10b981"},
    {"name": "IT Support", "description": "First line support team", "color": "#60a5fa"},
]

SUBDIVISIONS = [("IT", "IT Support", HierarchyType.team)]

SLA_HOURS = {
    TicketPriority.urgent: (1, 4),
    TicketPriority.high: (4, 24),
    TicketPriority.medium: (8, 72),
    TicketPriority.low: (24, 168),
}


def _department(db, fields: dict[str, str]) -> Department:
    department = db.query(Department).filter(Department.name == fields["name"]).first()
    if department:
        return department
    department = Department(**fields)
    db.add(department)
    db.flush()
    return department


def seed() -> None:
    db = SessionLocal()
    try:
        by_name = {fields["name"]: _department(db, fields) for fields in DEPARTMENTS}
        for parent, child, kind in SUBDIVISIONS:
            exists = (
                db.query(DepartmentHierarchy)
                .filter(
                    DepartmentHierarchy.parent_department_id == by_name[parent].id,
                    DepartmentHierarchy.child_department_id == by_name[child].id,
                )
                .first()
            )
            if not exists:
                db.add(
                    DepartmentHierarchy(
                        parent_department_id=by_name[parent].id,
                        child_department_id=by_name[child].id,
                        hierarchy_type=kind,
                    )
                )

        admin_email = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
        admin = db.query(User).filter(User.email == admin_email).first()
        if not admin:
            admin = User(
                username="admin",
                email=admin_email,
                name="Administrator",
                role=UserRole.admin,
                department_id=by_name["IT"].id,
                password_hash=hash_password(os.getenv("SEED_ADMIN_PASSWORD", "change-me-now")),
                is_active=True,
            )
            db.add(admin)
            logger.info("Seeded admin user %s", admin_email)

        if not db.query(Role).filter(Role.name == "Super Admin").first():
            role = Role(name="Super Admin", description="Every permission", is_system=True)
            role.permissions = [RolePermission(permission=key) for key in sorted(PERMISSION_CATALOG)]
            db.add(role)

        for key, value in SETTING_DEFAULTS.items():
            if not db.get(SystemSetting, key):
                db.add(SystemSetting(key=key, value=value, category=setting_category(key)))
        db.commit()

        helpdesk, created = create_helpdesk(
            db, HelpdeskCreate(department_id=by_name["IT"].id, name="IT Helpdesk", description="Hardware, access and software requests")
        )
        if created:
            for priority, (first_response, resolution) in SLA_HOURS.items():
                db.add(
                    SlaPolicy(
                        helpdesk_id=helpdesk.id,
                        name=f"{priority.value.title()} priority",
                        priority=priority,
                        first_response_hours=first_response,
                        resolution_hours=resolution,
                        enabled=True,
                    )
                )
            db.commit()
        logger.info("Seed complete: %d departments, helpdesk %s", len(by_name), helpdesk.name)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    seed()
