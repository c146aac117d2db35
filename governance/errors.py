"""Exceptions and warnings raised by the governance pipeline.

Content problems (contract violations, leaked secrets, exhausted retries)
are captured into result objects; only ConfigurationError escapes to callers.
"""


class GovernanceError(Exception):
    """Base class for governance errors."""


class ConfigurationError(GovernanceError):
    """The static contract catalog is inconsistent with ContractType.

    Indicates a programming defect, never bad model output.
    """


class RegenerationFailure(GovernanceError):
    """The caller's regeneration callback raised.

    Ends the current retry cycle; the engine records it in the outcome errors.
    """

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"regeneration failed: {cause}")


class SecretLeakWarning(UserWarning):
    """A response contained secret-like data that was masked."""
