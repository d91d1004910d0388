from .common import ApiResponse, ErrorResponse, HealthCheckResponse, ResponseMeta
from .projects import DocumentCreateRequest, DocumentRead, ProjectCreateRequest, ProjectRead
from .sections import RollbackRequest, SectionCreateRequest, SectionUpdateRequest
from .soa import SectionContent, SectionRead, SourceReference
from .workflows import (
    ApprovalRequest,
    ApprovalResponse,
    RejectionRequest,
    WorkflowStateResponse,
)

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "ResponseMeta",
    "DocumentCreateRequest",
    "DocumentRead",
    "ProjectCreateRequest",
    "ProjectRead",
    "RollbackRequest",
    "SectionCreateRequest",
    "SectionUpdateRequest",
    "SectionContent",
    "SectionRead",
    "SourceReference",
    "ApprovalRequest",
    "ApprovalResponse",
    "RejectionRequest",
    "WorkflowStateResponse",
]
