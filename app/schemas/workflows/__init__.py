from .request import ApprovalRequest, RejectionRequest
from .response import ApprovalResponse, WorkflowStateResponse

__all__ = [
    "ApprovalRequest",
    "RejectionRequest",
    "ApprovalResponse",
    "WorkflowStateResponse",
]
