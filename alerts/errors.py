"""Alert lifecycle errors."""


class AlertError(Exception):
    """Base class for alert store and lifecycle errors."""


class AlertNotFoundError(AlertError):
    def __init__(self, alert_id):
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id


class InvalidTransitionError(AlertError):
    """Raised when a lifecycle action is not allowed from the alert's current status."""

    def __init__(self, alert_id, current, requested):
        current = getattr(current, "value", current)
        requested = getattr(requested, "value", requested)
        super().__init__(f"Alert {alert_id} cannot move from {current} to {requested}")
        self.alert_id = alert_id
        self.current = current
        self.requested = requested


class InvalidRequestError(AlertError, ValueError):
    """Malformed client input: bad query parameter, body shape, or unknown keyword."""
