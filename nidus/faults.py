"""
Nidus Faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
- Framework faults raised during declaration, bootstrap and dispatch
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines logging level when a fault reaches the transport.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration and declaration errors")
FaultDomain.DI = FaultDomain("di", "Dependency injection errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route matching errors")
FaultDomain.FLOW = FaultDomain("flow", "Handler execution errors")
FaultDomain.IO = FaultDomain("io", "Request and response I/O")
FaultDomain.SYSTEM = FaultDomain("system", "System level faults")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.DI: Severity.ERROR,
    FaultDomain.ROUTING: Severity.WARN,
    FaultDomain.FLOW: Severity.ERROR,
    FaultDomain.IO: Severity.WARN,
    FaultDomain.SYSTEM: Severity.FATAL,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "UNRESOLVED_TOKEN")
        message: Human-readable summary
        domain: Fault domain (CONFIG, DI, ROUTING, ...)
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        public: Whether the message is safe to expose to a client
        metadata: Additional context data

    Example:
        ```python
        raise Fault(
            code="USER_NOT_FOUND",
            message="User with ID 123 not found",
            domain=FaultDomain.FLOW,
            public=True,
        )
        ```
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        public: Optional[bool] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        # Fallback to class attributes if not provided
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        self.severity = severity or DOMAIN_DEFAULTS.get(self.domain, Severity.ERROR)
        self.public = public if public is not None else getattr(self, "public", False)
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON error bodies and logs."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "metadata": self.metadata,
        }


# ============================================================================
# Framework Faults
# ============================================================================

class BootstrapFault(Fault):
    """Module or controller misconfiguration, raised before serving traffic."""
    domain = FaultDomain.CONFIG
    code = "BOOTSTRAP_ERROR"

    def __init__(self, message: str, **metadata: Any):
        super().__init__(code=self.code, message=message, metadata=metadata)


class HttpError(Fault):
    """
    HTTP-level failure raised from handlers or middleware.

    The transport's final error handler answers with ``status`` and, for
    public faults, ``message``. Client errors (4xx) are public by default.

    Example:
        raise HttpError(404, "User not found")
    """
    domain = FaultDomain.FLOW

    def __init__(
        self,
        status: int = 500,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        public: Optional[bool] = None,
        **metadata: Any,
    ):
        from http import HTTPStatus

        try:
            phrase = HTTPStatus(status).phrase
        except ValueError:
            phrase = "HTTP Error"

        self.status = status
        super().__init__(
            code=code or phrase.upper().replace(" ", "_").replace("-", "_"),
            message=message or phrase,
            domain=FaultDomain.IO if status < 500 else FaultDomain.FLOW,
            public=public if public is not None else status < 500,
            metadata=metadata,
        )
