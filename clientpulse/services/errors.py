"""
Domain exceptions raised by the service layer.

Routes translate these into HTTP responses; services never raise
HTTPException themselves.
"""


class ClientPulseError(Exception):
    """Base exception for service-layer errors."""

    def __init__(self, message: str, user_message: str | None = None):
        self.message = message
        self.user_message = user_message or message
        super().__init__(message)


class InvalidPrioritizationInput(ClientPulseError):
    """An answer is missing or outside its allowed values."""


class PrioritizationExists(ClientPulseError):
    """The client already has a prioritization and overwrite was not confirmed."""


class ContentAnalysisError(ClientPulseError):
    """The external image analysis could not produce a result."""


class UnsupportedImageType(ClientPulseError):
    """Uploaded file is not a JPG or PNG image."""


class AutomationConfigError(ClientPulseError):
    """Automation form is missing fields required by its action type."""


class AutomationExecutionError(ClientPulseError):
    """An automation ran but could not complete its action."""
