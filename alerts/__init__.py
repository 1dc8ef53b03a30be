"""Alert detection, lifecycle, and notification."""
from alerts.errors import AlertError, AlertNotFoundError, InvalidRequestError, InvalidTransitionError
from alerts.engine import AlertDetectionEngine, deduplicate_and_prioritize
from alerts.rules_manager import RulesManager
from alerts.manager import AlertManager
from alerts.channels import (
    LiveFeed, DashboardChannel, WebSocketChannel, EmailChannel, SMSChannel, PushChannel,
)
from alerts.dispatcher import NotificationDispatcher
