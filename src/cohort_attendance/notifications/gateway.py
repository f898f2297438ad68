from __future__ import annotations

import logging
import uuid
from typing import Protocol

from ..common.validators import format_international
from .model import GatewayResult

logger = logging.getLogger(__name__)


class NotificationGateway(Protocol):
    """Outbound message transport (WhatsApp, SMS, ...)."""

    def send(self, contact: str, message: str) -> GatewayResult:
        raise NotImplementedError


class LoggingGateway(NotificationGateway):
    """Writes messages to the log instead of a real transport."""

    def send(self, contact: str, message: str) -> GatewayResult:
        number = format_international(contact)
        if number is None:
            return GatewayResult(success=False, error=f"Invalid phone number: {contact}")
        dispatch_id = f"log-{uuid.uuid4().hex[:12]}"
        logger.info("Message %s to %s:\n%s", dispatch_id, number, message)
        return GatewayResult(success=True, dispatch_id=dispatch_id)
