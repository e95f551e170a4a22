"""
Exception hierarchy for the lead sync pipeline.

Vault and provider errors are caught per lead by the processor and turned into
an `error` automation log. ConfigurationError is raised at startup only.
"""
from typing import Optional


class LeadSyncError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(LeadSyncError):
    """Required process-wide configuration is missing or invalid."""


class VaultError(LeadSyncError):
    """Stored credential envelope could not be decrypted."""


class MalformedEnvelope(VaultError):
    """Envelope is not `nonce:tag:ciphertext` hex."""


class AuthenticationFailure(VaultError):
    """GCM tag check failed - tampered data or wrong key."""


class ProviderError(LeadSyncError):
    """Non-success response from an external provider."""

    provider = "provider"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MetaApiError(ProviderError):
    provider = "meta"


class GoogleApiError(ProviderError):
    provider = "google"


class PipelineError(LeadSyncError):
    """Automation is missing data the pipeline needs (connection, sheet target)."""
