"""
Collection Service

A small FastAPI application exposing underbar's collection algorithms.
Callers cannot send code, so predicates, transforms and reducers are picked
by name from the registry.
"""

import datetime
import logging
import random
import time
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from . import algorithms as _
from .config import get_settings, setup_logging
from .errors import UnderbarError, UnknownCallableError
from .models import (
    CacheInfo,
    CallablesResponse,
    CollectionRequest,
    CollectionResponse,
    ErrorResponse,
    HealthCheckResponse,
    PluckRequest,
    PredicateOperation,
    ReduceRequest,
    ShuffleRequest,
    SortByRequest,
    StatsResponse,
)
from .registry import CallableKind, fibonacci, list_callables, resolve

logger = logging.getLogger(__name__)

_service_stats = {
    "started_at": time.time(),
    "requests_processed": 0,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings = get_settings()
    setup_logging(settings)
    _service_stats["started_at"] = time.time()
    logger.info(f"Collection service starting (max_collection_size={settings.max_collection_size})")
    yield
    logger.info(f"Collection service stopped after {_service_stats['requests_processed']} requests")


app = FastAPI(
    title="underbar collection service",
    description="Functional collection operations over JSON arrays and objects",
    version=__version__,
    lifespan=lifespan
)


def _error_response(status_code: int, exc: Exception, error_code: str, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=str(exc),
            error_code=error_code,
            error_type=error_type,
            timestamp=datetime.datetime.now(datetime.timezone.utc)
        ).model_dump(mode="json")
    )


@app.exception_handler(UnderbarError)
async def underbar_error_handler(request: Request, exc: UnderbarError):
    status_code = 404 if isinstance(exc, UnknownCallableError) else 400
    logger.warning(f"{request.url.path}: {exc}")
    return _error_response(status_code, exc, exc.error_code, type(exc).__name__)


def _run(operation: str, request: CollectionRequest, compute: Callable[[], Any]):
    """Time ``compute`` and wrap its result; errors from callables become 400s."""
    start_time = time.perf_counter()
    try:
        result = compute()
    except UnderbarError:
        raise
    except (TypeError, ValueError, KeyError, AttributeError) as e:
        logger.warning(f"{operation} failed: {e}")
        return _error_response(400, e, "CALLABLE_ERROR", type(e).__name__)

    _service_stats["requests_processed"] += 1
    processing_time = (time.perf_counter() - start_time) * 1000
    return CollectionResponse(
        operation=operation,
        result=result,
        input_size=len(request.collection),
        processing_time_ms=processing_time
    )


@app.get("/health", response_model=HealthCheckResponse)
async def health() -> HealthCheckResponse:
    checks = {
        "settings_loaded": get_settings() is not None,
        "registry_available": bool(list_callables()[CallableKind.PREDICATE.value]),
    }
    return HealthCheckResponse(
        status="healthy" if all(checks.values()) else "degraded",
        timestamp=datetime.datetime.now(datetime.timezone.utc),
        checks=checks,
        version=__version__
    )


@app.get("/callables", response_model=CallablesResponse)
async def callables() -> CallablesResponse:
    return CallablesResponse(callables=list_callables())


@app.get("/stats", response_model=StatsResponse)
async def stats() -> StatsResponse:
    return StatsResponse(
        uptime_seconds=time.time() - _service_stats["started_at"],
        requests_processed=_service_stats["requests_processed"],
        caches={"fibonacci": CacheInfo(**fibonacci.cache_info())}
    )


@app.post("/collections/reduce", response_model=CollectionResponse)
async def reduce_collection(request: ReduceRequest):
    """Fold the collection with a named reducer"""
    combine = resolve(CallableKind.REDUCER, request.callable)
    if request.has_seed:
        return _run("reduce", request, lambda: _.reduce(request.collection, combine, request.seed))
    return _run("reduce", request, lambda: _.reduce(request.collection, combine))


@app.post("/collections/sort_by", response_model=CollectionResponse)
async def sort_by_collection(request: SortByRequest):
    """Stable sort by a field name or a named transform (identity by default)"""
    if request.key:
        criterion = request.key
    elif request.callable:
        criterion = resolve(CallableKind.TRANSFORM, request.callable)
    else:
        criterion = _.identity
    return _run("sort_by", request, lambda: _.sort_by(request.collection, criterion))


@app.post("/collections/pluck", response_model=CollectionResponse)
async def pluck_collection(request: PluckRequest):
    return _run("pluck", request, lambda: _.pluck(request.collection, request.key))


@app.post("/collections/uniq", response_model=CollectionResponse)
async def uniq_collection(request: CollectionRequest):
    return _run("uniq", request, lambda: _.uniq(request.collection))


@app.post("/collections/flatten", response_model=CollectionResponse)
async def flatten_collection(request: CollectionRequest):
    return _run("flatten", request, lambda: _.flatten(request.collection))


@app.post("/collections/shuffle", response_model=CollectionResponse)
async def shuffle_collection(request: ShuffleRequest):
    seed = request.seed if request.seed is not None else get_settings().shuffle_seed
    rng = random.Random(seed)
    return _run("shuffle", request, lambda: _.shuffle(request.collection, rng))


@app.post("/collections/{operation}", response_model=CollectionResponse)
async def apply_operation(operation: PredicateOperation, request: CollectionRequest):
    """
    Apply filter/reject/map/every/some with a named callable.

    map takes a transform; the others take a predicate. every/some fall
    back to truthiness when no callable is given.
    """
    if operation is PredicateOperation.MAP:
        if not request.callable:
            transform = _.identity
        else:
            transform = resolve(CallableKind.TRANSFORM, request.callable)
        return _run("map", request, lambda: _.map(request.collection, lambda v, *rest: transform(v)))

    predicate = resolve(CallableKind.PREDICATE, request.callable) if request.callable else None
    if operation is PredicateOperation.EVERY:
        return _run("every", request, lambda: _.every(request.collection, predicate))
    if operation is PredicateOperation.SOME:
        return _run("some", request, lambda: _.some(request.collection, predicate))

    predicate = predicate or _.identity
    if operation is PredicateOperation.FILTER:
        return _run("filter", request, lambda: _.filter(request.collection, predicate))
    return _run("reject", request, lambda: _.reject(request.collection, predicate))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
