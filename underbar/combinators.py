"""
Function combinators: once, memoize, delay, throttle.

Each wrapper owns its state; two calls to the same combinator never share
anything. ``delay`` and ``throttle`` schedule work on an asyncio event loop.
"""

import asyncio
import functools
import json
import logging
import threading
import time
import types
from typing import Any, Callable, Dict, Optional

from .errors import MemoizeKeyError, SchedulerUnavailableError

logger = logging.getLogger(__name__)


def _name(fn) -> str:
    return getattr(fn, "__name__", repr(fn))


def _resolve_loop(loop: Optional[asyncio.AbstractEventLoop]) -> asyncio.AbstractEventLoop:
    if loop is not None:
        return loop
    try:
        return asyncio.get_running_loop()
    except RuntimeError as e:
        raise SchedulerUnavailableError(
            "No running event loop; call from a coroutine or pass loop="
        ) from e


def once(fn: Callable) -> Callable:
    """
    Wrap ``fn`` so it runs at most once.

    The first call that returns normally stores its result; every later
    call returns that result without running ``fn`` again, whatever the
    arguments. If ``fn`` raises, nothing is stored and the next call tries
    again.
    """
    lock = threading.RLock()
    state = {"called": False, "result": None}

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        with lock:
            if state["called"]:
                logger.debug(f"once({_name(fn)}): returning stored result")
                return state["result"]
            result = fn(*args, **kwargs)
            state["result"] = result
            state["called"] = True
            wrapper.called = True
            return result

    wrapper.called = False
    return wrapper


def _check_mapping_keys(value) -> None:
    # json.dumps would quietly turn {1: ...} into {"1": ...}
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise MemoizeKeyError(
                    f"Arguments cannot be used as a cache key: mapping key {key!r} is not a string"
                )
            _check_mapping_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_mapping_keys(item)


def make_cache_key(args: tuple, kwargs: Dict[str, Any]) -> str:
    """
    Canonical, type-sensitive key for an argument list.

    ``1``, ``1.0``, ``"1"`` and ``True`` all serialize differently, so they
    land in different cache slots. Dicts with non-string keys are rejected,
    since JSON would merge ``{1: x}`` and ``{"1": x}``.
    """
    _check_mapping_keys(args)
    _check_mapping_keys(kwargs)
    try:
        return json.dumps(
            [list(args), kwargs],
            sort_keys=True,
            separators=(",", ":"),
            allow_nan=True,
        )
    except (TypeError, ValueError) as e:
        raise MemoizeKeyError(f"Arguments cannot be used as a cache key: {e}") from e


def memoize(fn: Callable) -> Callable:
    """
    Cache ``fn``'s results per distinct argument list.

    Intended for referentially transparent functions of JSON-serializable
    arguments. The cache grows without bound. A stored ``None`` counts as a
    hit; exceptions are not cached.
    """
    lock = threading.RLock()
    cache: Dict[str, Any] = {}
    stats = {"hits": 0, "misses": 0}

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        key = make_cache_key(args, kwargs)
        with lock:
            if key in cache:
                stats["hits"] += 1
                logger.debug(f"memoize({_name(fn)}): hit {key}")
                return cache[key]
            stats["misses"] += 1
            logger.debug(f"memoize({_name(fn)}): miss {key}")
            result = fn(*args, **kwargs)
            cache[key] = result
            return result

    def cache_info() -> Dict[str, int]:
        with lock:
            return {"hits": stats["hits"], "misses": stats["misses"], "size": len(cache)}

    wrapper.cache = types.MappingProxyType(cache)
    wrapper.cache_info = cache_info
    return wrapper


def delay(fn: Callable, wait_ms: float, *args, loop: Optional[asyncio.AbstractEventLoop] = None, **kwargs) -> None:
    """
    Run ``fn(*args, **kwargs)`` on the event loop no earlier than ``wait_ms``
    milliseconds from now.

    Fire-and-forget: nothing is returned and the call cannot be withdrawn.
    """
    if wait_ms < 0:
        raise ValueError(f"wait_ms must be >= 0, got {wait_ms}")
    event_loop = _resolve_loop(loop)
    # errors raised by fn go to the loop's exception handler
    event_loop.call_later(wait_ms / 1000.0, functools.partial(fn, *args, **kwargs))
    logger.debug(f"delay({_name(fn)}): scheduled in {wait_ms}ms")


class Throttled:
    """
    Rate-limited wrapper returned by :func:`throttle`.

    Executions of the wrapped function are always at least ``wait_ms``
    apart. Calls made inside a window collapse into one trailing execution
    with the latest arguments.
    """

    def __init__(self, fn: Callable, wait_ms: float, leading: bool = True,
                 trailing: bool = True, loop: Optional[asyncio.AbstractEventLoop] = None,
                 clock: Callable[[], float] = time.monotonic):
        if wait_ms < 0:
            raise ValueError(f"wait_ms must be >= 0, got {wait_ms}")
        if not (leading or trailing):
            raise ValueError("throttle needs at least one of leading/trailing")
        functools.update_wrapper(self, fn)
        self.fn = fn
        self.wait = wait_ms / 1000.0
        self.leading = leading
        self.trailing = trailing
        self._loop = loop
        self._clock = clock
        self._attr_name: Optional[str] = None
        self._last_run: Optional[float] = None
        self._pending: Optional[asyncio.TimerHandle] = None
        self._pending_args = None
        self._result = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def __set_name__(self, owner, name):
        self._attr_name = name

    def __get__(self, instance, owner=None):
        """Bind to ``instance`` with a throttle window of its own."""
        if instance is None:
            return self
        bound = Throttled(
            functools.partial(self.fn, instance), self.wait * 1000.0,
            leading=self.leading, trailing=self.trailing,
            loop=self._loop, clock=self._clock,
        )
        functools.update_wrapper(bound, self.fn)
        # cached on the instance so later lookups share the same window
        name = self._attr_name or _name(self.fn)
        instance.__dict__[name] = bound
        return bound

    def __call__(self, *args, **kwargs):
        now = self._clock()
        if not self.leading and (self._last_run is None or not 0 <= now - self._last_run < self.wait):
            # a call on an idle window opens a new one without running
            self._last_run = now
        remaining = 0.0 if self._last_run is None else self.wait - (now - self._last_run)

        if remaining <= 0 or remaining > self.wait:
            # idle window (or the clock went backwards)
            self._cancel_pending()
            self._execute(now, args, kwargs)
        elif self.trailing:
            self._pending_args = (args, kwargs)
            if self._pending is None:
                loop = _resolve_loop(self._loop)
                self._pending = loop.call_later(remaining, self._run_trailing)
            logger.debug(f"throttle({_name(self.fn)}): coalesced call, trailing in {remaining:.3f}s")
        else:
            logger.debug(f"throttle({_name(self.fn)}): dropped call inside window")
        return self._result

    def cancel(self) -> None:
        """Drop any pending trailing call and forget the current window."""
        self._cancel_pending()
        self._last_run = None

    def _execute(self, now: float, args, kwargs):
        self._last_run = now
        self._result = self.fn(*args, **kwargs)

    def _run_trailing(self):
        self._pending = None
        now = self._clock()
        remaining = self.wait - (now - self._last_run) if self._last_run is not None else 0.0
        if remaining > 0:
            # timer fired a little early
            self._pending = _resolve_loop(self._loop).call_later(remaining, self._run_trailing)
            return
        args, kwargs = self._pending_args
        self._pending_args = None
        self._execute(now, args, kwargs)

    def _cancel_pending(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
            self._pending_args = None


def throttle(fn: Callable, wait_ms: float, leading: bool = True, trailing: bool = True,
             loop: Optional[asyncio.AbstractEventLoop] = None) -> Throttled:
    """Limit ``fn`` to one execution per ``wait_ms`` milliseconds."""
    return Throttled(fn, wait_ms, leading=leading, trailing=trailing, loop=loop)
