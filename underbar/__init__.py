"""
underbar - functional collection helpers and function combinators.

Use the package itself as the namespace::

    import underbar as _

    _.map({"one": 1, "two": 2}, lambda n, *rest: n * 3)   # [3, 6]
    fib = _.memoize(lambda n: n if n < 2 else fib(n - 1) + fib(n - 2))
"""

from .algorithms import (
    contains,
    defaults,
    difference,
    every,
    extend,
    filter,
    first,
    flatten,
    identical,
    identity,
    index_of,
    intersection,
    invoke,
    last,
    map,
    pluck,
    reduce,
    reject,
    shuffle,
    some,
    sort_by,
    uniq,
    zip,
)
from .combinators import Throttled, delay, make_cache_key, memoize, once, throttle
from .errors import (
    InvalidCollectionError,
    MemoizeKeyError,
    SchedulerUnavailableError,
    UnderbarError,
    UnknownCallableError,
)
from .iteration import for_each_entry, traversal_for

__version__ = "1.0.0"
