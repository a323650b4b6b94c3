"""
Capability every OTP notification service exposes.
"""


class NotificationService:
    """
    Delivers a one-time password to a single destination.

    Subclasses implement ``send`` and name the ``User`` attribute holding the
    destination (email address, phone number) in ``destination_field``.
    """

    name = "base"
    destination_field = "email"

    def destination_for(self, user):
        """Return the address this service should deliver to, or None."""
        value = getattr(user, self.destination_field, None)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def send(self, destination, code, reference=None) -> bool:
        """Deliver ``code`` to ``destination``. Return True when accepted by the transport."""
        raise NotImplementedError

    def __repr__(self):
        return f'<{type(self).__name__} {self.name}>'
