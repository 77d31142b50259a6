from clientpulse.models.models import (
    AuditLog,
    Automation,
    AutomationRun,
    Client,
    ClientPrioritization,
    ClientSummary,
    Deal,
    Event,
    OutboundMessage,
    Reminder,
    User,
)

__all__ = [
    "AuditLog",
    "Automation",
    "AutomationRun",
    "Client",
    "ClientPrioritization",
    "ClientSummary",
    "Deal",
    "Event",
    "OutboundMessage",
    "Reminder",
    "User",
]
