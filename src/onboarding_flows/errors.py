"""Exception types raised by the onboarding engine.

Validation problems are never raised; they come back as
:class:`~onboarding_flows.models.session.ValidationResult`.  Lookups that
miss (unknown flow, no open session) raise plain ``ValueError`` with a
"not found" message, which the HTTP layer maps to 404.
"""


class OnboardingError(Exception):
    """Base class for engine errors."""


class ConfigurationError(OnboardingError):
    """The workflow configuration cannot satisfy the request.

    Raised for a flow with no stage mapping or a role with no workflow.
    Fatal to the current operation; callers must abort and report.
    """


class PersistenceError(OnboardingError):
    """A collaborator failed to read or write stored state."""
