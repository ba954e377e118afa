"""
Collection algorithms built on the iteration core.

Each function here accepts a sequence or a mapping (unless its name says
otherwise), never mutates it, and walks it through ``for_each_entry``.
Several names deliberately mirror builtins (``filter``, ``map``,
``reduce``, ``zip``); use them through the package namespace
(``import underbar as _; _.map(...)``).
"""

import builtins
import random
from collections.abc import MutableMapping
from typing import Any, Callable, List, Optional

from .errors import InvalidCollectionError
from .iteration import for_each_entry, is_mapping, is_sequence

_MISSING = object()

# Types compared by value in identity checks, the way `===` treats primitives
_PRIMITIVES = (int, float, complex, str, bytes, bool, type(None))


def identity(value):
    """Return ``value`` unchanged. Used as the default predicate."""
    return value


def identical(a, b) -> bool:
    """Strict identity: same object, or equal primitives of the exact same type."""
    if type(a) is float and a != a:
        return False  # NaN
    if a is b:
        return True
    if type(a) is not type(b) or type(a) not in _PRIMITIVES:
        return False
    return a == b


def _require_sequence(value):
    if not is_sequence(value):
        raise InvalidCollectionError(value)
    return value


# ---------- predicate / transform algorithms ----------

def filter(collection, predicate: Callable[[Any], Any]) -> List[Any]:
    """Values for which ``predicate(value)`` is truthy, in traversal order."""
    results = []

    def visit(value, key, coll):
        if predicate(value):
            results.append(value)

    for_each_entry(collection, visit)
    return results


def reject(collection, predicate: Callable[[Any], Any]) -> List[Any]:
    """Complement of ``filter``."""
    return filter(collection, lambda value: not predicate(value))


def map(collection, transform: Callable[[Any, Any, Any], Any]) -> List[Any]:
    """``transform(value, key, collection)`` for every element, order preserved."""
    results = []

    def visit(value, key, coll):
        results.append(transform(value, key, coll))

    for_each_entry(collection, visit)
    return results


def reduce(collection, combine: Callable[[Any, Any], Any], seed=_MISSING):
    """
    Fold ``collection`` into one value with ``combine(accumulator, value)``.

    Without a seed, the first visited element becomes the accumulator and
    ``combine`` starts at the second one. The first element is only read,
    never removed from the caller's collection. An empty collection with no
    seed gives ``None``.
    """
    accumulator = seed
    seeded = seed is not _MISSING

    def visit(value, key, coll):
        nonlocal accumulator, seeded
        if not seeded:
            accumulator = value
            seeded = True
            return
        accumulator = combine(accumulator, value)

    for_each_entry(collection, visit)
    return accumulator if seeded else None


def index_of(sequence, target) -> int:
    """Index of the first element identical to ``target``, or -1."""
    _require_sequence(sequence)
    result = -1

    def visit(value, index, coll):
        nonlocal result
        if result == -1 and identical(value, target):
            result = index

    for_each_entry(sequence, visit)
    return result


def contains(collection, target) -> bool:
    """True if any value in ``collection`` is identical to ``target``."""
    found = False

    def visit(value, key, coll):
        nonlocal found
        if identical(value, target):
            found = True

    for_each_entry(collection, visit)
    return found


def every(collection, predicate: Optional[Callable[[Any], Any]] = None) -> bool:
    """True if every value passes ``predicate``; True for an empty collection."""
    predicate = predicate or identity
    passed = True

    def visit(value, key, coll):
        nonlocal passed
        if not predicate(value):
            passed = False

    for_each_entry(collection, visit)
    return passed


def some(collection, predicate: Optional[Callable[[Any], Any]] = None) -> bool:
    """True if at least one value passes ``predicate``; False when empty."""
    predicate = predicate or identity
    return len(filter(collection, predicate)) > 0


# ---------- collection utilities ----------

def first(sequence, n: Optional[int] = None):
    """First element (``None`` when empty), or a list of the first ``n``."""
    _require_sequence(sequence)
    if n is None:
        return sequence[0] if len(sequence) else None
    return list(sequence[:max(n, 0)])


def last(sequence, n: Optional[int] = None):
    """Last element (``None`` when empty), or a list of the last ``n``."""
    _require_sequence(sequence)
    if n is None:
        return sequence[-1] if len(sequence) else None
    if n <= 0:
        return []
    return list(sequence[-n:])


def pluck(collection, key) -> List[Any]:
    """``item[key]`` for every item."""
    return map(collection, lambda item, *_: item[key])


def uniq(sequence) -> List[Any]:
    """Duplicate-free copy, keeping first occurrences in order."""
    _require_sequence(sequence)
    seen: List[Any] = []

    def visit(value, index, coll):
        if index_of(seen, value) == -1:
            seen.append(value)

    for_each_entry(sequence, visit)
    return seen


def extend(target: MutableMapping, *sources) -> MutableMapping:
    """Copy every key of every source into ``target``; later sources win."""
    if not isinstance(target, MutableMapping):
        raise InvalidCollectionError(target)

    def assign(value, key, coll):
        target[key] = value

    for source in sources:
        for_each_entry(source, assign)
    return target


def defaults(target: MutableMapping, *sources) -> MutableMapping:
    """Fill keys missing from ``target``; the earliest source wins."""
    if not isinstance(target, MutableMapping):
        raise InvalidCollectionError(target)

    def fill(value, key, coll):
        if key not in target:
            target[key] = value

    for source in sources:
        for_each_entry(source, fill)
    return target


def shuffle(sequence, rng=None) -> List[Any]:
    """
    Return a new list with the elements in random order.

    ``rng`` is anything with a ``random()`` method returning floats in
    [0, 1); the ``random`` module is used by default.
    """
    rng = rng or random
    shuffled = list(_require_sequence(sequence))
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def invoke(collection, function_or_name, *args) -> List[Any]:
    """
    Call a function on, or a named method of, every value.

    ``invoke(xs, fn, 1)`` gives ``[fn(x, 1) ...]``;
    ``invoke(xs, "upper")`` gives ``[x.upper() ...]``.
    """
    if callable(function_or_name):
        return map(collection, lambda value, *_: function_or_name(value, *args))
    if isinstance(function_or_name, str):
        return map(collection, lambda value, *_: getattr(value, function_or_name)(*args))
    raise TypeError(
        f"invoke expects a callable or a method name, got {type(function_or_name).__name__}"
    )


def flatten(nested) -> List[Any]:
    """Flatten arbitrarily nested lists and tuples into one list."""
    results = []

    def visit(value, index, coll):
        if isinstance(value, (list, tuple)):
            results.extend(flatten(value))
        else:
            results.append(value)

    for_each_entry(_require_sequence(nested), visit)
    return results


def sort_by(collection, criterion) -> List[Any]:
    """
    Values sorted by ``criterion(value)``, or by ``value[criterion]`` when
    ``criterion`` is a string. The sort is stable.
    """
    if isinstance(criterion, str):
        name = criterion
        criterion = lambda value: value[name]
    values = map(collection, lambda value, *_: value)
    return builtins.sorted(values, key=criterion)


def zip(*sequences) -> List[List[Any]]:
    """Group elements by index; shorter inputs are padded with ``None``."""
    for seq in sequences:
        _require_sequence(seq)
    length = builtins.max((len(seq) for seq in sequences), default=0)
    return [
        [seq[i] if i < len(seq) else None for seq in sequences]
        for i in range(length)
    ]


def intersection(*sequences) -> List[Any]:
    """Unique values of the first sequence that every other sequence contains."""
    if not sequences:
        return []
    head, rest = sequences[0], sequences[1:]
    return filter(
        uniq(head),
        lambda value: every(rest, lambda other: contains(other, value)),
    )


def difference(sequence, *others) -> List[Any]:
    """Values of ``sequence`` that appear in none of ``others``."""
    _require_sequence(sequence)
    return reject(
        sequence,
        lambda value: some(others, lambda other: contains(other, value)),
    )
