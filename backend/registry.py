"""
API module registry.

An API module maps HTTP verbs (lower case) to handler functions. Modules are
registered under the first path segment after /api.
"""

from typing import Awaitable, Callable, Optional, Union

from backend.context import ApiContext

ApiMethod = Callable[[ApiContext], Union[Awaitable[None], None]]


class ApiModule:
    """A set of verb handlers for one resource."""

    def __init__(self, name: str):
        self.name = name
        self._methods: dict[str, ApiMethod] = {}

    def add(self, verb: str, method: ApiMethod) -> ApiMethod:
        self._methods[verb.strip().lower()] = method
        return method

    def method(self, verb: str) -> Callable[[ApiMethod], ApiMethod]:
        """Decorator registering a handler for a verb."""
        def decorator(method: ApiMethod) -> ApiMethod:
            return self.add(verb, method)
        return decorator

    def get(self, method: ApiMethod) -> ApiMethod:
        return self.add("get", method)

    def post(self, method: ApiMethod) -> ApiMethod:
        return self.add("post", method)

    def find(self, verb: str) -> Optional[ApiMethod]:
        """Return the handler whose name equals the verb exactly."""
        return self._methods.get(verb)


_modules: dict[str, ApiModule] = {}
_builtins_loaded = False


def register_module(module: ApiModule) -> ApiModule:
    _modules[module.name] = module
    return module


def unregister_module(name: str) -> None:
    _modules.pop(name, None)


def get_module(name: str) -> Optional[ApiModule]:
    """Look up a module by name; None if there is no such module."""
    global _builtins_loaded

    if not _builtins_loaded:
        _builtins_loaded = True
        _load_builtin_modules()
    return _modules.get(name)


def _load_builtin_modules() -> None:
    # Imported lazily, handler modules import this one
    from backend.api import workspace

    _modules.setdefault(workspace.module.name, workspace.module)
