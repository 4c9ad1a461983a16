"""
Error taxonomy for document verification.

InvalidInput, NotFound and IllegalTransition are returned to the caller.
UpstreamUnavailable is folded into ``success=False`` results by the
orchestrator and never reaches the caller.
"""


class VerificationError(Exception):
    """Base class for verification engine errors."""


class InvalidInput(VerificationError):
    """Malformed document reference or unknown document kind."""


class NotFound(VerificationError):
    """The entity has no record in the store."""


class IllegalTransition(VerificationError):
    """A decision would violate the approval state machine."""


class UpstreamUnavailable(VerificationError):
    """The extractor or verifier timed out or errored."""
