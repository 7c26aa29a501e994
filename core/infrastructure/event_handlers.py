"""
Event handlers for domain events.

These handlers process domain events for side effects like audit logging.
"""

import logging

from activations.domain.events import DomainActivated, DomainDeactivated
from core.domain.events import DomainEvent, EventHandler
from licenses.domain.events import LicenseCreated, LicenseStatusChanged

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")

AUDITED_EVENTS = (LicenseCreated, LicenseStatusChanged, DomainActivated, DomainDeactivated)


class AuditLogEventHandler(EventHandler):
    """
    Event handler for audit logging.

    Writes one structured line per domain event to the ``audit`` logger.
    """

    async def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event for audit logging.

        Args:
            event: Domain event to log
        """
        audit_logger.info(
            "Audit log: %s - %s",
            event.event_type,
            event.aggregate_id,
            extra={"event": event.to_dict()},
        )


def register_event_handlers():
    """Register all event handlers with the event bus."""
    from core.infrastructure.events import event_bus

    audit_handler = AuditLogEventHandler()
    for event_type in AUDITED_EVENTS:
        event_bus.subscribe(event_type, audit_handler)

    logger.info("Event handlers registered")
