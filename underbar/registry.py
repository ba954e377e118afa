"""Named callables the HTTP service can apply to collections."""

import operator
from enum import Enum
from typing import Any, Callable, Dict, List

from .combinators import memoize
from .errors import UnknownCallableError


class CallableKind(str, Enum):
    """What a registered callable is used for."""
    PREDICATE = "predicate"
    TRANSFORM = "transform"
    REDUCER = "reducer"


# recursion depth grows with n until the cache is warm
MAX_FIBONACCI = 300


@memoize
def fibonacci(n: int) -> int:
    """n-th Fibonacci number; memoized so repeated requests are cheap."""
    if n < 0:
        raise ValueError("fibonacci is undefined for negative numbers")
    if n > MAX_FIBONACCI:
        raise ValueError(f"fibonacci supports n <= {MAX_FIBONACCI}")
    return n if n < 2 else fibonacci(n - 1) + fibonacci(n - 2)


PREDICATES: Dict[str, Callable[[Any], Any]] = {
    "is_even": lambda v: v % 2 == 0,
    "is_odd": lambda v: v % 2 == 1,
    "is_truthy": bool,
    "is_positive": lambda v: v > 0,
    "is_string": lambda v: isinstance(v, str),
}

TRANSFORMS: Dict[str, Callable[[Any], Any]] = {
    "double": lambda v: v * 2,
    "triple": lambda v: v * 3,
    "square": lambda v: v * v,
    "negate": operator.neg,
    "stringify": str,
    "fibonacci": fibonacci,
}

REDUCERS: Dict[str, Callable[[Any, Any], Any]] = {
    "add": operator.add,
    "multiply": operator.mul,
    "max": max,
    "min": min,
    "concat": lambda acc, v: f"{acc}{v}",
}

_TABLES = {
    CallableKind.PREDICATE: PREDICATES,
    CallableKind.TRANSFORM: TRANSFORMS,
    CallableKind.REDUCER: REDUCERS,
}


def resolve(kind: CallableKind, name: str) -> Callable:
    """Look up a registered callable or raise ``UnknownCallableError``."""
    table = _TABLES[kind]
    if name not in table:
        raise UnknownCallableError(name, kind.value)
    return table[name]


def list_callables() -> Dict[str, List[str]]:
    return {kind.value: sorted(table) for kind, table in _TABLES.items()}
