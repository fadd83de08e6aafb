# core/errors.py


class AuditorError(Exception):
    """Base class for everything the auditor raises on purpose."""


class ConfigurationError(AuditorError):
    """Missing or unusable configuration, e.g. no API key for the vision model."""


class ExtractionFailure(AuditorError):
    """The AI extraction could not produce a usable invoice. Safe to retry with a new upload."""


class AgreementNotFound(AuditorError, KeyError):
    def __init__(self, agreement_id: str):
        super().__init__(agreement_id)
        self.agreement_id = agreement_id

    def __str__(self):
        return f"Agreement '{self.agreement_id}' not found."


class InactiveAgreement(AuditorError):
    """Only active agreements can receive invoices."""


class SubmissionRejected(AuditorError):
    """Raised when submit is attempted while the gate is closed."""

    def __init__(self, reason: str):
        super().__init__(f"Submission blocked: {reason}")
        self.reason = reason


class AttestationError(AuditorError):
    """The attestation endpoint refused or could not be reached."""
