"""
Exceptions for cloudsync.
"""


class CloudSyncError(Exception):
    """Base exception for sync operations."""


class ClientIdentityError(CloudSyncError):
    """Raised when no usable hardware address exists to derive a client id."""


class ListingError(CloudSyncError):
    """Raised when one of the replicas could not be listed."""

    def __init__(self, side: str, cause: Exception):
        super().__init__(f"Failed to list {side} replica: {cause}")
        self.side = side
        self.cause = cause


class ActionError(CloudSyncError):
    """Raised when a single sync action fails."""

    def __init__(self, action, cause: Exception):
        super().__init__(f"{action} failed: {cause}")
        self.action = action
        self.cause = cause
