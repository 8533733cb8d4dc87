"""Console client of the back-office gateway."""

from backoffice.client.actions import ActionRunner
from backoffice.client.gateway import GatewayClient
from backoffice.client.notifications import Notification, NotificationLevel, Notifier
from backoffice.client.orchestrator import ListOrchestrator, ListQuery
from backoffice.client.session import Session
from backoffice.client.workflow import EnrollmentWorkflow

__all__ = [
    "ActionRunner",
    "EnrollmentWorkflow",
    "GatewayClient",
    "ListOrchestrator",
    "ListQuery",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "Session",
]
