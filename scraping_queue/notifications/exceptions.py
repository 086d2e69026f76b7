class NotificationError(Exception):
    """Raised when a progress event cannot be delivered."""
