class StoreError(RuntimeError):
    """Raised when the document store fails (I/O errors, unreadable records)."""
    pass


class PlatformSendError(RuntimeError):
    """Raised when the chat transport rejects or fails a reply."""
    pass


class NotificationError(RuntimeError):
    """Raised when posting lottery results to the third-party board fails."""
    pass
