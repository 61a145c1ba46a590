"""Database models for the business automation backend."""

from .crm import Contact, Lead, Task
from .event import AutomationEvent
from .job import ScheduledJob
from .logs import AutomationLog
from .run import AutomationRun
from .settings import BusinessAutomationSettings
from .workflow import Workflow, WorkflowEdge, WorkflowNode

__all__ = [
    "AutomationEvent",
    "AutomationLog",
    "AutomationRun",
    "BusinessAutomationSettings",
    "Contact",
    "Lead",
    "ScheduledJob",
    "Task",
    "Workflow",
    "WorkflowEdge",
    "WorkflowNode",
]
