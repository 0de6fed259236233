"""
Error taxonomy for a chat turn.

Every failure the core can produce is a CopilotError with a message fit to
show the user. The handler turns these into a failed turn; nothing here is
retried.
"""


class CopilotError(Exception):
    """Base class for failures surfaced to the user as a failed turn."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(CopilotError):
    """No access token could be obtained (the user declined to sign in)."""

    def __init__(self, message: str = "Please login to Pulumi Cloud to use this feature."):
        super().__init__(message)


class AuthenticationRejected(CopilotError):
    """The backend answered 401. The token provider has already been invalidated."""

    def __init__(self, message: str = "Your Pulumi access token was rejected. Please re-authenticate."):
        super().__init__(message)


class ConnectivityError(CopilotError):
    """The service could not be reached or returned an unusable response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class Cancelled(CopilotError):
    """The turn was cancelled by the host."""

    def __init__(self, message: str = "The request was cancelled."):
        super().__init__(message)


class ValidationError(CopilotError):
    """The turn cannot proceed with the input it was given."""


class NoOrganizationsError(ValidationError):
    def __init__(self, message: str = "You are not a member of any Pulumi organization."):
        super().__init__(message)


class UnknownOrganizationError(ValidationError):
    def __init__(self, handle: str):
        super().__init__(f"'{handle}' is not one of your Pulumi organizations.")
        self.handle = handle


class OrganizationSelectionDismissed(ValidationError):
    """The user closed the organization pick list without choosing."""

    def __init__(self, message: str = "You must select an organization to proceed."):
        super().__init__(message)
