from .formatters import format_duration, format_file_size
from .media import MediaKind
from .planner import TransferPolicy, plan_transfer
from .transfer import (
    Part,
    Payload,
    ProgressSnapshot,
    TransferMode,
    TransferPlan,
    TransferRequest,
)

__all__ = [
    "MediaKind",
    "Part",
    "Payload",
    "ProgressSnapshot",
    "TransferMode",
    "TransferPlan",
    "TransferPolicy",
    "TransferRequest",
    "format_duration",
    "format_file_size",
    "plan_transfer",
]
