"""Error taxonomy for the resolution pipeline.

Core code raises these and never prints. Each error keeps a machine-readable
``kind`` plus the underlying message so the CLI can pick the right
remediation text without parsing strings.
"""

from __future__ import annotations

_REAUTH_HINT = "Re-authenticate with `az login --allow-no-subscriptions` or refresh AZURE_DEVOPS_EXT_PAT."


class RelscopeError(Exception):
    kind = "error"

    def __init__(self, message: str, *, remediation: str | None = None):
        super().__init__(message)
        self.message = message
        self.remediation = remediation

    def __str__(self) -> str:
        return self.message


class FormatError(RelscopeError):
    """A user-supplied identifier does not have the expected shape."""

    kind = "format"


class NotFoundError(RelscopeError):
    """No build or release matched after every fallback was tried."""

    kind = "not_found"


class TransportError(RelscopeError):
    """The az CLI or a REST call failed (network, auth, 4xx/5xx, bad JSON)."""

    kind = "transport"

    def __init__(self, message: str, *, status_code: int | None = None, remediation: str | None = None):
        super().__init__(message, remediation=remediation)
        self.status_code = status_code


class AuthenticationError(TransportError):
    kind = "auth"

    def __init__(self, message: str, *, status_code: int | None = None, remediation: str | None = None):
        super().__init__(message, status_code=status_code, remediation=remediation or _REAUTH_HINT)
