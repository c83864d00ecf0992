"""
Nidus - decorator-driven module composition for async HTTP services

Complete integration of:
- Modules: hierarchical modules with path prefixes and provider scopes
- DI: token-based constructor injection with parent-chained registries
- Controllers: route, middleware and error-handler decorators
- HTTP: chainable response helpers over an express-style ASGI transport
- Events: in-process publish/subscribe wired from decorators
- Faults: structured errors with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Core Framework
# ============================================================================

from .module import AppModule, ModuleState
from .config import ConfigError, ConfigLoader, ServerConfig
from .faults import BootstrapFault, Fault, FaultDomain, HttpError, Severity
from .paths import join_paths, normalize_path

# ============================================================================
# Dependency Injection
# ============================================================================

from .di import (
    DependencyRegistry,
    Inject,
    Injectable,
    UnresolvedTokenError,
    ValueProvider,
    inject,
    provide,
)

# ============================================================================
# Controllers & HTTP
# ============================================================================

from .controller import (
    Controller,
    ErrorHandlerMiddleware,
    EventEmitter,
    EventListener,
    HttpDelete,
    HttpGet,
    HttpPatch,
    HttpPost,
    HttpPut,
    Middleware,
    route,
)
from .http import HttpContext, HttpResponse
from .events import EventManager
from .transport import Application, Request, Response, json_body

__all__ = [
    "__version__",
    # Core
    "AppModule",
    "ModuleState",
    "ConfigError",
    "ConfigLoader",
    "ServerConfig",
    "BootstrapFault",
    "Fault",
    "FaultDomain",
    "HttpError",
    "Severity",
    "join_paths",
    "normalize_path",
    # DI
    "DependencyRegistry",
    "Inject",
    "Injectable",
    "UnresolvedTokenError",
    "ValueProvider",
    "inject",
    "provide",
    # Controllers
    "Controller",
    "ErrorHandlerMiddleware",
    "EventEmitter",
    "EventListener",
    "HttpDelete",
    "HttpGet",
    "HttpPatch",
    "HttpPost",
    "HttpPut",
    "Middleware",
    "route",
    # HTTP
    "HttpContext",
    "HttpResponse",
    "EventManager",
    "Application",
    "Request",
    "Response",
    "json_body",
]
