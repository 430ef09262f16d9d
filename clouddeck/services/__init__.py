from .base import BaseService, InvalidObjectOperationError, ServiceError
from .bundle import ServiceBundle, get_service_bundle
from .chunked_upload import TransferExecutor
from .listing import ListingCursor, ListingPage, ListingService
from .object_service import ConnectionTestResult, ObjectService, ShareLink
from .progress import ProgressAggregator
from .retry import RetryContext, RetryPolicy
from .upload_service import TransferResult, UploadService

__all__ = [
    "BaseService",
    "ConnectionTestResult",
    "InvalidObjectOperationError",
    "ListingCursor",
    "ListingPage",
    "ListingService",
    "ObjectService",
    "ProgressAggregator",
    "RetryContext",
    "RetryPolicy",
    "ServiceBundle",
    "ServiceError",
    "ShareLink",
    "TransferExecutor",
    "TransferResult",
    "UploadService",
    "get_service_bundle",
]
