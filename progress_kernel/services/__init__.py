"""Services for the progress kernel (write side)."""

from progress_kernel.services.authorization import (
    AllowAllTemplateAuthority,
    RoleTemplateAuthority,
    TemplateEditAuthority,
)
from progress_kernel.services.change_log_service import ChangeLogService
from progress_kernel.services.component_progress_service import (
    ComponentProgressService,
)
from progress_kernel.services.recalculation_service import RecalculationService
from progress_kernel.services.template_editing_service import TemplateEditingService
from progress_kernel.services.template_store_service import TemplateStoreService

__all__ = [
    "AllowAllTemplateAuthority",
    "ChangeLogService",
    "ComponentProgressService",
    "RecalculationService",
    "RoleTemplateAuthority",
    "TemplateEditAuthority",
    "TemplateEditingService",
    "TemplateStoreService",
]
