"""Read-only selectors for template and change-log queries."""

from progress_kernel.selectors.change_log_selector import ChangeLogSelector
from progress_kernel.selectors.template_selector import TemplateSelector

__all__ = [
    "ChangeLogSelector",
    "TemplateSelector",
]
