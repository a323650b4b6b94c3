"""
Notification services that deliver one-time passwords (email, SMS, log).
"""
from services.base import NotificationService
from services.factory import ServiceFactory, get_service

__all__ = [
    'NotificationService',
    'ServiceFactory',
    'get_service',
]
