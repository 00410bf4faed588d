from .types import (
    CompletionRequest,
    CompletionStreamEvent,
    Message,
    ModelInfo,
    SearchResult,
    RelayframeError,
    ErrorCategory,
    StreamEventType,
)
from .endpoints import EndpointSpec, BackendKind, openrouter_endpoint
from .registry import SearchProviderRegistry
from .client import RelayframeClient
from .credentials import CredentialProbe, CredentialState, HttpCredentialProbe

__all__ = [
    # Types
    "CompletionRequest",
    "CompletionStreamEvent",
    "Message",
    "ModelInfo",
    "SearchResult",
    "RelayframeError",
    "ErrorCategory",
    "StreamEventType",
    # Endpoints
    "EndpointSpec",
    "BackendKind",
    "openrouter_endpoint",
    # Registry
    "SearchProviderRegistry",
    # Client
    "RelayframeClient",
    # Credentials
    "CredentialProbe",
    "CredentialState",
    "HttpCredentialProbe",
]
