"""Contract text extraction (the unstructured-to-structured collaborator)."""

from core.extraction.contract_extractor import (
    ContractExtractionAgent,
    ContractExtractor,
    ExtractionExecutionResult,
    ExtractionRequest,
    RetryConfig,
)

__all__ = [
    "ContractExtractionAgent",
    "ContractExtractor",
    "ExtractionExecutionResult",
    "ExtractionRequest",
    "RetryConfig",
]
