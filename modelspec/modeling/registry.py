"""Registry mapping serialized class names to extractor and scorer classes.

Model definitions refer to their extractor and scorer by name. Those names
are resolved here rather than by importing arbitrary dotted paths, so only
classes that were registered at program start can be loaded from JSON.
"""

import importlib
import logging
from typing import Callable, Iterable, TypeVar

from modelspec.domain.errors import TypeNotFound


logger = logging.getLogger(__name__)

C = TypeVar("C", bound=type)


def qualified_name(cls: type) -> str:
    """Return the default serialized name of a class."""
    return f"{cls.__module__}.{cls.__qualname__}"


class TypeRegistry:
    """Registry of classes that can be named in a model definition."""

    def __init__(self) -> None:
        self._by_name: dict[str, type] = {}
        self._names: dict[type, str] = {}

    def register(self, cls: C | None = None, *, name: str | None = None) -> C | Callable[[C], C]:
        """Register a class under a name.

        Usable directly or as a decorator, with or without a name::

            @registry.register
            class MyExtractor(Extractor): ...

            @registry.register(name="doubling")
            class Doubling(Extractor): ...

        Args:
            cls: Class to register
            name: Name to register under (defaults to the qualified name)

        Returns:
            The class itself, or a decorator when cls is omitted

        Raises:
            ValueError: If the name is already taken by a different class
        """
        def decorator(target: C) -> C:
            key = name or qualified_name(target)
            existing = self._by_name.get(key)
            if existing is not None and existing is not target:
                raise ValueError(
                    f"The name '{key}' is already registered to {qualified_name(existing)}"
                )
            self._by_name[key] = target
            self._names.setdefault(target, key)
            logger.debug("Registered %s as '%s'", qualified_name(target), key)
            return target

        if cls is None:
            return decorator
        return decorator(cls)

    def unregister(self, name: str) -> None:
        cls = self._by_name.pop(name, None)
        if cls is not None and self._names.get(cls) == name:
            del self._names[cls]

    def resolve(self, name: str) -> type:
        """Return the class registered under name.

        Raises:
            TypeNotFound: If nothing is registered under name.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise TypeNotFound(name) from None

    def name_of(self, cls: type) -> str:
        """Return the name cls serializes under."""
        return self._names.get(cls, qualified_name(cls))

    def ensure_registered(self, cls: type) -> str:
        """Return the name cls serializes under, registering it first if needed.

        Raises:
            ValueError: If cls is unregistered and its qualified name is taken
        """
        if cls not in self._names:
            self.register(cls)
        return self._names[cls]

    def is_registered(self, name: str) -> bool:
        return name in self._by_name

    def list_available(self) -> list[str]:
        return sorted(self._by_name)

    def load_modules(self, modules: Iterable[str]) -> None:
        """Import modules whose import registers phase classes.

        Raises:
            ImportError: If a module cannot be imported.
        """
        for module in modules:
            logger.debug("Importing %s to populate the type registry", module)
            importlib.import_module(module)


default_registry = TypeRegistry()


def register(cls: C | None = None, *, name: str | None = None) -> C | Callable[[C], C]:
    """Register a class with the default registry."""
    return default_registry.register(cls, name=name)
