"""
POI sync exceptions.

Remote and decode errors never leave the sync controller; façade errors
propagate to whoever called the collection.
"""
from typing import Optional


class POISyncError(Exception):
    """Base exception for POI sync errors"""
    pass


class RemoteServiceError(POISyncError):
    """Base class for failures talking to the remote POI service"""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TransportError(RemoteServiceError):
    """Network failure, timeout or non-200 status from the remote service"""
    pass


class DecodeError(RemoteServiceError):
    """Success status but the expected payload field is missing or malformed"""
    pass


class UnsupportedOperationError(POISyncError):
    """Write operation on a read-only resource collection"""

    def __init__(self, operation: str, resource_type: str, resource_id: str):
        super().__init__(
            f"{operation} is not supported on '{resource_type}' resources "
            f"(id {resource_id}); collections are populated by the sync cycle only"
        )
        self.operation = operation
        self.resource_type = resource_type
        self.resource_id = resource_id
