"""
AppModule - module graph and bootstrap orchestration.

A module owns providers, controllers and imports. Bootstrapping the root
module walks the import graph twice:

1. Registration pass: compose each placement's mount path, create its
   registry (child of the importer's registry), register its providers,
   then recurse into its imports.
2. Mount pass: resolve each placement's controllers and mount their items
   on the root transport, local controllers first, then imported modules,
   depth first. Error handlers are mounted last, after every route.

A module imported by several parents is bootstrapped once but mounted
under every importer, each placement resolving through its own child
registry. Import cycles stop at the first module already on the current
import chain. A module bootstrapped by another tree keeps its registry
and controller instances and is only mounted. ``bootstrap()`` is
idempotent.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from .config import ConfigLoader, ServerConfig
from .controller.metadata import (
    ErrorHandlerItem,
    MiddlewareItem,
    RouteItem,
    get_controller_items,
    get_controller_path,
)
from .di import DependencyRegistry, ProviderDecl, normalize_provider
from .di.core import Token
from .events import EVENT_MANAGER_TOKEN, EventManager
from .faults import BootstrapFault
from .http.context import adapt_error_handler, adapt_handler
from .paths import join_paths, normalize_path
from .transport import Application, json_body


logger = logging.getLogger("nidus.module")

CONFIG_TOKEN = "Config"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ModuleState(str, Enum):
    UNBOOTSTRAPPED = "unbootstrapped"
    BOOTSTRAPPING = "bootstrapping"
    BOOTSTRAPPED = "bootstrapped"


ImportDecl = Union["AppModule", type]


@dataclass
class _Mount:
    """One placement of a module: where it is mounted and what it resolves through."""
    node: "AppModule"
    path: str
    registry: DependencyRegistry
    instances: Dict[type, Any]
    fresh: bool = True
    children: List["_Mount"] = field(default_factory=list)


class AppModule:
    """
    A node of the application graph.

    Args:
        path: Mount path, relative to the importing module (default ``/``)
        providers: Classes, ``{"key", "useValue" | "useClass" | "provide"}``
            mappings or provider objects
        controllers: Controller classes, resolved through this module's registry
        imports: ``AppModule`` instances (shared) or subclasses (instantiated
            per importer)
        config: ``ConfigLoader`` or ``ServerConfig``; registered as ``"Config"``
            when this module is the root

    Example:
        ```python
        main = AppModule(
            path="/api",
            providers=[
                {"key": "UserService", "provide": UserService},
                {"key": "UserRepo", "provide": UserRepoMemory},
            ],
            controllers=[LogMiddleware],
            imports=[UserModule, company_module],
        )
        await main.listen(3000)
        ```
    """

    def __init__(
        self,
        path: Optional[str] = None,
        providers: Optional[List[Any]] = None,
        controllers: Optional[List[type]] = None,
        imports: Optional[List[ImportDecl]] = None,
        *,
        config: Optional[Union[ConfigLoader, ServerConfig]] = None,
    ):
        self.path = path
        self.providers: List[ProviderDecl] = [normalize_provider(p) for p in providers or []]
        self.controllers: List[type] = list(controllers or [])
        self.imports: List[ImportDecl] = list(imports or [])
        self.config = config
        self.server_config = _server_config(config)

        for controller in self.controllers:
            if not inspect.isclass(controller):
                raise BootstrapFault(f"Controllers must be classes, got {controller!r}", module=self.name)
        for imported in self.imports:
            if not (isinstance(imported, AppModule) or (inspect.isclass(imported) and issubclass(imported, AppModule))):
                raise BootstrapFault(
                    f"Imports must be AppModule instances or subclasses, got {imported!r}",
                    module=self.name,
                )

        # Bootstrap bookkeeping
        self.parent_module: Optional[AppModule] = None
        self.module_path: str = normalize_path(path)
        self.state = ModuleState.UNBOOTSTRAPPED
        self.registry: Optional[DependencyRegistry] = None
        self.events: Optional[EventManager] = None
        self.root: Optional[AppModule] = None
        self.controller_instances: Dict[type, Any] = {}
        self._resolved_imports: Optional[List[AppModule]] = None
        self._listening = False

        self.app = Application(name=self.name)
        self.app.use(json_body(self.server_config.json_limit))

    @property
    def name(self) -> str:
        if type(self) is not AppModule:
            return type(self).__name__
        return f"AppModule({normalize_path(self.path)})"

    @property
    def bootstrapped(self) -> bool:
        return self.state is ModuleState.BOOTSTRAPPED

    @property
    def listening(self) -> bool:
        return self._listening

    def resolved_imports(self) -> List["AppModule"]:
        """Imported modules, with class imports instantiated once per importer."""
        if self._resolved_imports is None:
            resolved = []
            for imported in self.imports:
                if isinstance(imported, AppModule):
                    resolved.append(imported)
                    continue
                try:
                    resolved.append(imported())
                except TypeError as exc:
                    raise BootstrapFault(
                        f"Cannot instantiate imported module {imported.__name__}: {exc}",
                        module=self.name,
                    ) from exc
            self._resolved_imports = resolved
        return self._resolved_imports

    # ========================================================================
    # Bootstrap
    # ========================================================================

    async def bootstrap(self) -> "AppModule":
        """
        Register providers and mount controllers for the whole tree.

        Returns this module. Calling it again after success is a no-op.
        """
        if self.state is ModuleState.BOOTSTRAPPED:
            return self
        if self.state is ModuleState.BOOTSTRAPPING:
            raise BootstrapFault(
                f"{self.name} is already bootstrapping (or a previous bootstrap failed)",
                module=self.name,
            )

        logger.info("Bootstrapping %s", self.name)
        events = EventManager()
        registry = DependencyRegistry(name=self.name)
        registry.register({"key": EVENT_MANAGER_TOKEN, "useValue": events})
        if self.config is not None:
            registry.register({"key": CONFIG_TOKEN, "useValue": self.config})

        visited: List[AppModule] = []
        plan = self._register(None, registry, events, visited, ())

        deferred: List[Tuple[str, Callable[..., Any], str]] = []
        await self._mount(self.app, plan, deferred)
        for path, handler, label in deferred:
            self.app.use_error(path, handler)
            logger.info("Registering error handler: %s -> %s", path, label)

        for node in visited:
            node.state = ModuleState.BOOTSTRAPPED
        logger.info("Bootstrapped %s (%d modules, %d layers)", self.name, len(visited), len(self.app.layers))
        return self

    def _register(
        self,
        parent: Optional["_Mount"],
        registry: DependencyRegistry,
        events: EventManager,
        visited: List["AppModule"],
        ancestors: Tuple["AppModule", ...],
    ) -> "_Mount":
        anchor = parent.path if parent is not None else None
        path = join_paths(anchor, self.path)

        if self.state is ModuleState.BOOTSTRAPPED:
            # Bootstrapped by another tree: mount only, with its own registry and controllers
            mount = _Mount(self, path, self.registry, self.controller_instances, fresh=False)
            logger.debug("Module %s already bootstrapped, mounting at %s", self.name, path)
        elif any(node is self for node in visited):
            # Shared node reached through another importer
            registry.register_all(self.providers)
            mount = _Mount(self, path, registry, {})
            logger.debug("Module %s mounted again at %s with %d providers", self.name, path, len(self.providers))
        else:
            visited.append(self)
            self.state = ModuleState.BOOTSTRAPPING
            self.root = visited[0]
            self.module_path = path
            self.registry = registry
            self.events = events
            registry.register_all(self.providers)
            mount = _Mount(self, path, registry, self.controller_instances)
            logger.debug("Module %s at %s registered %d providers", self.name, path, len(self.providers))

        lineage = ancestors + (self,)
        edges: Set[Tuple[int, str]] = set()
        for child in self.resolved_imports():
            if any(node is child for node in lineage):
                continue
            edge = (id(child), join_paths(path, child.path))
            if edge in edges:
                continue
            edges.add(edge)
            if child.parent_module is None and child.state is not ModuleState.BOOTSTRAPPED and child is not visited[0]:
                child.parent_module = self
            mount.children.append(
                child._register(mount, mount.registry.child(child.name), events, visited, lineage)
            )
        return mount

    async def _mount(
        self,
        app: Application,
        mount: "_Mount",
        deferred: List[Tuple[str, Callable[..., Any], str]],
    ) -> None:
        for controller in self.controllers:
            await self._mount_controller(app, mount, controller, deferred)

        for child in mount.children:
            await child.node._mount(app, child, deferred)

    async def _mount_controller(
        self,
        app: Application,
        mount: "_Mount",
        controller: type,
        deferred: List[Tuple[str, Callable[..., Any], str]],
    ) -> None:
        instance = mount.instances.get(controller)
        created = instance is None
        if created:
            instance = await mount.registry.resolve(controller)
            mount.instances[controller] = instance

        items = get_controller_items(controller)
        if created and mount.fresh:
            self.events.register_listeners(instance)
            self.events.register_emitters(instance)

        base = join_paths(mount.path, get_controller_path(controller))
        for item in items:
            handler = getattr(instance, item.property_key)
            path = join_paths(base, item.path)
            label = f"{controller.__name__}.{item.property_key}"
            if isinstance(item, RouteItem):
                app.route(item.method, path, adapt_handler(handler))
                logger.info("Registering route: %s %s -> %s", item.method.upper(), path, label)
            elif isinstance(item, MiddlewareItem):
                app.use(path, adapt_handler(handler))
                logger.info("Registering middleware: %s -> %s", path, label)
            elif isinstance(item, ErrorHandlerItem):
                deferred.append((path, adapt_error_handler(handler), label))

    # ========================================================================
    # Runtime
    # ========================================================================

    async def resolve(self, token: Token) -> Any:
        """Resolve ``token`` from this module's registry (bootstraps first)."""
        if self.registry is None:
            await self.bootstrap()
        return await self.registry.resolve(token)

    def get_app(self) -> Application:
        """The ASGI application this module mounts onto when it is the root."""
        return self.app

    def routes(self) -> List[Dict[str, Any]]:
        return [layer.to_dict() for layer in self.app.layers]

    async def listen(
        self,
        port: Optional[int] = None,
        host: Optional[str] = None,
        callback: Optional[Callable[[], Any]] = None,
    ) -> "AppModule":
        """Bootstrap, then serve on ``host:port`` (config defaults). Idempotent."""
        await self.bootstrap()
        if self._listening:
            logger.warning("%s is already listening", self.name)
            return self
        await self.app.listen(
            port if port is not None else self.server_config.port,
            host or self.server_config.host,
            callback,
            log_level=self.server_config.log_level,
        )
        self._listening = True
        return self

    async def close(self) -> None:
        if not self._listening:
            return
        await self.app.close()
        self._listening = False

    def run(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        log_level: Optional[str] = None,
    ) -> None:
        """
        Bootstrap and serve with uvicorn until interrupted (blocking).

        Args:
            host: Host to bind to
            port: Port to bind to
            log_level: Logging level
        """
        import uvicorn

        log_level = log_level or self.server_config.log_level
        host = host or self.server_config.host
        port = port if port is not None else self.server_config.port

        logging.basicConfig(
            level=getattr(logging, log_level.upper(), logging.INFO),
            format=LOG_FORMAT,
        )

        asyncio.run(self.bootstrap())

        logger.info("Starting uvicorn server on %s:%s", host, port)
        uvicorn.run(self.app, host=host, port=port, log_level=log_level)

    def __repr__(self) -> str:
        return f"<{self.name} path={self.module_path!r} state={self.state.value}>"


def _server_config(config: Optional[Union[ConfigLoader, ServerConfig]]) -> ServerConfig:
    if config is None:
        return ServerConfig()
    if isinstance(config, ServerConfig):
        return config
    if isinstance(config, ConfigLoader):
        return config.server_config()
    raise BootstrapFault(f"config must be a ConfigLoader or ServerConfig, got {type(config).__name__}")
