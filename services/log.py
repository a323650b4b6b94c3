"""
Development service: writes the code to the application log instead of sending it.
"""
import logging

from services.base import NotificationService

logger = logging.getLogger(__name__)


class LogService(NotificationService):
    name = "log"
    destination_field = "email"

    def send(self, destination, code, reference=None) -> bool:
        logger.info("[OTP] Code %s for %s (ref=%s)", code, destination, reference or "-")
        return True
