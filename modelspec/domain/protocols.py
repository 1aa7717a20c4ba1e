"""Protocol interfaces for the collaborators a model run depends on."""

from typing import Any, Iterable, Mapping, Protocol, Sequence, runtime_checkable

from .entities import KVStoreSpec


@runtime_checkable
class KeyValueStore(Protocol):
    """Interface for an opened key-value lookup store.

    The key and value types are whatever the opener produced. A phase that
    expects different types is in error; nothing here checks them.
    """

    def get(self, key: Any, default: Any = None) -> Any:
        """Return the value stored for key, or default."""
        ...

    def __getitem__(self, key: Any) -> Any:
        ...

    def __contains__(self, key: object) -> bool:
        ...

    def close(self) -> None:
        """Release any resources held by the store."""
        ...


@runtime_checkable
class StoreOpener(Protocol):
    """Interface for turning a KVStoreSpec into an opened store."""

    def open(self, spec: KVStoreSpec) -> KeyValueStore:
        """Open the described store.

        Raises:
            StoreUnavailable: If the store cannot be opened.
        """
        ...

    def open_all(self, specs: Iterable[KVStoreSpec]) -> dict[str, KeyValueStore]:
        """Open every store in a phase, keyed by store name.

        Raises:
            StoreUnavailable: If any store cannot be opened.
        """
        ...


@runtime_checkable
class TypeResolver(Protocol):
    """Interface for resolving a serialized class name to a class."""

    def resolve(self, name: str) -> type:
        """Return the class registered under name.

        Raises:
            TypeNotFound: If nothing is registered under name.
        """
        ...

    def name_of(self, cls: type) -> str:
        """Return the name a class is serialized under."""
        ...


class ExecutionEngine(Protocol):
    """Interface for an engine that runs bound phases over a model table."""

    def run(
        self,
        bound: Any,
        environment: Any,
        tuples: Sequence[Mapping[str, Any]] = (),
    ) -> list[dict[str, Any]]:
        """Run one bound phase.

        The extract phase ignores tuples and returns the tuples it produced.
        The score phase consumes tuples and returns the rows it wrote.

        Raises:
            ExecutionError: If the phase fails.
        """
        ...

    def commit(self) -> None:
        """Make everything written by the score phase durable."""
        ...
