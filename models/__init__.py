from .extraction_request import ExtractionRequest, OptimizationMode, ProfileKind
from .extracted_profile import ExtractedProfile
from .preprocessed_document import PreprocessedDocument
from .usage_record import UsageRecord
from .backend_response import BackendAttempt, BackendResponse
from .orchestration_result import OrchestrationResult

__all__ = [
    "ExtractionRequest",
    "OptimizationMode",
    "ProfileKind",
    "ExtractedProfile",
    "PreprocessedDocument",
    "UsageRecord",
    "BackendAttempt",
    "BackendResponse",
    "OrchestrationResult",
]
