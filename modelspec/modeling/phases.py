"""Extractor and Scorer capabilities, and the key-value store binding they share.

A phase instance never opens its own key-value stores. The runner opens
them, then hands them over exactly once through ``bind_phase``; from then
on the phase reads them with ``self.kvstore(name)``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, ClassVar, Mapping

from modelspec.domain.entities import Phase
from modelspec.domain.errors import (
    BindingError,
    KeyValueStoreNotFound,
    UninitializedStateError,
)
from modelspec.domain.protocols import KeyValueStore

from .fields import FieldSelector


class KeyValueStoreBinding:
    """The key-value stores available to one phase instance.

    Starts unset. The runner populates it once with ``set_all``; after that
    it is a read-only view.
    """

    def __init__(self) -> None:
        self._stores: Mapping[str, KeyValueStore] | None = None

    @property
    def is_bound(self) -> bool:
        return self._stores is not None

    @property
    def stores(self) -> Mapping[str, KeyValueStore]:
        if self._stores is None:
            raise UninitializedStateError(
                "This model phase has not been initialized properly. "
                "Its key-value stores haven't been loaded yet."
            )
        return self._stores

    def get(self, name: str) -> KeyValueStore:
        """Return the store bound under name.

        Raises:
            UninitializedStateError: If the runner has not bound stores yet.
            KeyValueStoreNotFound: If no store is bound under name.
        """
        stores = self.stores
        try:
            return stores[name]
        except KeyError:
            raise KeyValueStoreNotFound(name, stores.keys()) from None

    def set_all(self, stores: Mapping[str, KeyValueStore]) -> None:
        """Bind every store at once. Only the runner may call this.

        Raises:
            BindingError: If stores were already bound.
        """
        if self._stores is not None:
            raise BindingError("Key-value stores have already been bound to this phase.")
        self._stores = MappingProxyType(dict(stores))


class KeyValueStores:
    """Gives a phase named access to the key-value stores the runner opened."""

    def _kvstore_binding(self) -> KeyValueStoreBinding:
        # Created on first use so subclasses need not call a base __init__.
        binding = self.__dict__.get("_kvstore_binding_state")
        if binding is None:
            binding = KeyValueStoreBinding()
            self.__dict__["_kvstore_binding_state"] = binding
        return binding

    @property
    def kvstores(self) -> Mapping[str, KeyValueStore]:
        """All key-value stores bound to this phase, by logical name."""
        return self._kvstore_binding().stores

    def kvstore(self, name: str) -> KeyValueStore:
        """Return the key-value store bound under name.

        The caller decides what key and value types to expect; nothing checks
        them against the store the runner actually opened.
        """
        return self._kvstore_binding().get(name)


class Extractor(KeyValueStores, ABC):
    """Transforms store columns into intermediate tuple fields.

    Subclasses declare ``input_fields`` (tuple fields bound to store
    columns) and ``output_fields`` (tuple fields produced). ``extract`` is
    called with one keyword argument per input field, each a CellSlice, and
    returns one value per output field: a single value for one field, a
    tuple for several.
    """

    input_fields: ClassVar[FieldSelector]
    output_fields: ClassVar[FieldSelector]

    @abstractmethod
    def extract(self, **inputs: Any) -> Any:
        ...


class Scorer(KeyValueStores, ABC):
    """Consumes intermediate tuple fields and produces the score to write."""

    input_fields: ClassVar[FieldSelector]

    @abstractmethod
    def score(self, **inputs: Any) -> Any:
        ...


PHASE_TYPES: dict[Phase, type] = {
    Phase.EXTRACT: Extractor,
    Phase.SCORE: Scorer,
}


@dataclass(frozen=True)
class BoundPhase:
    """A phase instance whose key-value stores have been bound by the runner."""
    phase: Phase
    instance: Extractor | Scorer
    stores: Mapping[str, KeyValueStore]


def bind_phase(
    phase: Phase,
    instance: Extractor | Scorer,
    stores: Mapping[str, KeyValueStore],
) -> BoundPhase:
    """Bind opened stores to a phase instance.

    Args:
        phase: Which phase the instance runs as
        instance: A freshly constructed extractor or scorer
        stores: Opened stores, by logical name

    Returns:
        The bound phase, ready to hand to an execution engine

    Raises:
        TypeError: If the instance does not implement the phase's capability
        BindingError: If the instance was already bound
    """
    expected = PHASE_TYPES[Phase(phase)]
    if not isinstance(instance, expected):
        raise TypeError(
            f"Cannot bind {type(instance).__name__} as the {Phase(phase).value} phase; "
            f"it is not an instance of {expected.__name__}."
        )
    binding = instance._kvstore_binding()
    binding.set_all(stores)
    return BoundPhase(phase=Phase(phase), instance=instance, stores=binding.stores)
