"""
Template edit authorization.

Responsibility:
    Defines the single question the engine asks of the platform's
    authorization layer, ``can_edit_templates(actor_id, project_id)``, and
    ships two implementations:

    RoleTemplateAuthority      admin and project_manager may edit; the
                               actor's role in the project comes from a
                               caller-supplied lookup.
    AllowAllTemplateAuthority  grants everything (scripts, tests).

Architecture position:
    Kernel > Services.  Authentication and role storage live outside the
    kernel; only the decision interface lives here.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from uuid import UUID

RoleLookup = Callable[[UUID, UUID], str | None]

TEMPLATE_EDITOR_ROLES = frozenset({"admin", "project_manager"})


class TemplateEditAuthority(ABC):
    """Decides whether an actor may modify a project's templates."""

    @abstractmethod
    def can_edit_templates(self, actor_id: UUID, project_id: UUID) -> bool:
        ...


class RoleTemplateAuthority(TemplateEditAuthority):
    """
    Grants template edits to actors holding an editor role in the project.

    Args:
        role_lookup: ``(actor_id, project_id) -> role name or None``.
        editor_roles: Roles that may edit.  Defaults to admin and
            project_manager.
    """

    def __init__(
        self,
        role_lookup: RoleLookup,
        editor_roles: frozenset[str] = TEMPLATE_EDITOR_ROLES,
    ):
        self._role_lookup = role_lookup
        self._editor_roles = editor_roles

    def can_edit_templates(self, actor_id: UUID, project_id: UUID) -> bool:
        role = self._role_lookup(actor_id, project_id)
        return role is not None and role in self._editor_roles


class AllowAllTemplateAuthority(TemplateEditAuthority):
    """Grants every request."""

    def can_edit_templates(self, actor_id: UUID, project_id: UUID) -> bool:
        return True
