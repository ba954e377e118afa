"""
Iteration core.

Every collection operation in underbar is written on top of
``for_each_entry``. The sequence/mapping decision is made once, when the
traversal is built, instead of on every element.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Iterator, Tuple

from .errors import InvalidCollectionError

Visitor = Callable[[Any, Any, Any], Any]

TEXT_TYPES = (str, bytes, bytearray)


class Traversal(ABC):
    """Ordered walk over one collection."""

    def __init__(self, collection):
        self.collection = collection

    @abstractmethod
    def entries(self) -> Iterator[Tuple[Any, Any]]:
        """Yield ``(value, key)`` pairs in traversal order."""

    def __len__(self):
        return len(self.collection)


class SequenceTraversal(Traversal):
    """Index order, 0-based."""

    def entries(self):
        seq = self.collection
        for index in range(len(seq)):
            yield seq[index], index


class MappingTraversal(Traversal):
    """Key enumeration order of the mapping (insertion order for dict)."""

    def entries(self):
        mapping = self.collection
        # keys are snapshotted so a mutating visitor sees each key once;
        # keys it removed along the way are skipped
        for key in list(mapping.keys()):
            if key in mapping:
                yield mapping[key], key


def is_sequence(value) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, TEXT_TYPES)


def is_mapping(value) -> bool:
    return isinstance(value, Mapping)


def traversal_for(collection) -> Traversal:
    """Pick the traversal for ``collection`` or fail fast on anything else."""
    if is_mapping(collection):
        return MappingTraversal(collection)
    if is_sequence(collection):
        return SequenceTraversal(collection)
    raise InvalidCollectionError(collection)


def for_each_entry(collection, visitor: Visitor) -> None:
    """
    Call ``visitor(value, key, collection)`` once for every element.

    Sequences are visited by index, mappings by key. There is no early
    exit; callers that only need the first match simply ignore later ones.
    """
    traversal = traversal_for(collection)
    if not callable(visitor):
        raise TypeError(f"visitor must be callable, got {type(visitor).__name__}")

    for value, key in traversal.entries():
        visitor(value, key, collection)
