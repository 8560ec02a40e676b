"""Exception types shared across the trust, security and permission layers.

Only two situations raise out of the core: a hard collaborator that is
missing at construction time, and an external call that exhausted its
retries. Everything else degrades to a safe default inside the component
that owns the call.
"""
from __future__ import annotations


class MissingCollaboratorError(RuntimeError):
    """Raised when a required collaborator is absent at construction time.

    Parameters
    ----------
    component:
        Name of the component being constructed.
    collaborator:
        Name of the missing dependency.
    """

    def __init__(self, component: str, collaborator: str) -> None:
        self.component = component
        self.collaborator = collaborator
        super().__init__(f"{component} requires a {collaborator}, but none was provided.")


class ExternalCallError(RuntimeError):
    """Raised when an external call fails on every attempt.

    Parameters
    ----------
    operation:
        Short name of the external operation (e.g. "store.load_evidence").
    attempts:
        Number of attempts made before giving up.
    """

    def __init__(self, operation: str, attempts: int) -> None:
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"External call {operation!r} failed after {attempts} attempt(s).")
