"""Convenience imports for Alembic metadata discovery."""

from intranet.models.user import User
from intranet.models.department import Department, DepartmentHierarchy, DepartmentManager
from intranet.models.helpdesk import (
    EscalationCondition,
    EscalationRule,
    Helpdesk,
    HelpdeskWebhook,
    InboundEmailConfig,
    SlaPolicy,
    SlaState,
)
from intranet.models.forms import TicketFormCategory, TicketFormField
from intranet.models.ticket import Ticket, TicketActivity, TicketComment
from intranet.models.document import Book, BookVersion, DocumentActivity, Page, PageComment, PageVersion
from intranet.models.settings import DepartmentSetting, SettingsAudit, SystemSetting
from intranet.models.role import AuditLog, Role, RolePermission, UserRoleAssignment
from intranet.models.notification import Notification
from intranet.models.intranet import Announcement, ExternalLink, Post, PostComment, PostLike, SearchHistory  # noqa: F401
