"""SQLAlchemy ORM models for the progress kernel."""

from progress_kernel.models.component import Component
from progress_kernel.models.milestone_definition import MilestoneDefinition
from progress_kernel.models.project import Actor, Project
from progress_kernel.models.project_template import ProjectMilestoneTemplate
from progress_kernel.models.template_change import TemplateChangeRecord

__all__ = [
    "Actor",
    "Component",
    "MilestoneDefinition",
    "Project",
    "ProjectMilestoneTemplate",
    "TemplateChangeRecord",
]
