# Client synchronization layer (re-export for stable imports)
from .session import ClientSession
from .gateway import AppointmentsGateway, LocalAppointmentsGateway
from .http_gateway import HttpAppointmentsGateway
from .mirror import AppointmentMirror, MirrorEntry
from .notifications import LoggingNotifier, Notification, NotificationKind, Notifier

__all__ = [
    "ClientSession",
    "AppointmentsGateway",
    "LocalAppointmentsGateway",
    "HttpAppointmentsGateway",
    "AppointmentMirror",
    "MirrorEntry",
    "LoggingNotifier",
    "Notification",
    "NotificationKind",
    "Notifier",
]
