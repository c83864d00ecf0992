"""
DI-specific error types with rich diagnostics.
"""

from typing import Any, List, Optional

from ..faults import Fault, FaultDomain


class DIError(Fault):
    """Base exception for DI errors."""
    domain = FaultDomain.DI
    code = "DI_ERROR"

    def __init__(self, message: str, **metadata: Any):
        super().__init__(code=self.code, message=message, metadata=metadata)


class UnresolvedTokenError(DIError):
    """A token was requested that no registry in the chain has bound."""
    code = "UNRESOLVED_TOKEN"

    def __init__(
        self,
        token: str,
        candidates: Optional[List[str]] = None,
        requested_by: Optional[str] = None,
        registry: Optional[str] = None,
    ):
        self.token = token
        self.candidates = candidates or []
        self.requested_by = requested_by
        self.registry = registry

        # Build helpful error message
        msg = f"No provider found for token={token}"
        if registry:
            msg += f" (registry={registry})"

        if requested_by:
            msg += f"\nRequested by: {requested_by}"

        if self.candidates:
            msg += "\n\nDid you mean:"
            for candidate in self.candidates:
                msg += f"\n  - {candidate}"

        msg += "\n\nSuggested fixes:"
        msg += f"\n  - Add a provider for '{token}' to this module or one of its importers"
        msg += "\n  - Check the Inject(...) token spelling"

        super().__init__(
            msg,
            token=token,
            candidates=self.candidates,
            requested_by=requested_by,
        )


class DependencyCycleError(DIError):
    """Circular dependency detected."""
    code = "DEPENDENCY_CYCLE"

    def __init__(self, cycle: List[str]):
        self.cycle = cycle

        msg = "Detected dependency cycle:"
        for i, token in enumerate(cycle):
            arrow = " -> " if i < len(cycle) - 1 else ""
            msg += f"\n  {token}{arrow}"

        msg += "\n\nSuggested fixes:"
        msg += "\n  - Extract the shared logic into a third service"
        msg += "\n  - Resolve one side lazily from the registry at call time"

        super().__init__(msg, cycle=cycle)


class InvalidProviderError(DIError):
    """A provider declaration has none of the accepted shapes."""
    code = "INVALID_PROVIDER"

    def __init__(self, provider: Any, reason: str):
        self.provider = provider
        super().__init__(
            f"Invalid provider declaration {provider!r}: {reason}",
            provider=repr(provider),
        )
