"""Stage report — what a verbose run did, step by step.

With ``--verbose`` every service call records the stages it went through
(reading inputs, loading rules, the engine pass, rendering) and the counts
each stage produced: records read, value diffs found, mismatches, overlays
folded, the depth limit in force. The report is attached to
``ServiceResult.meta["stages"]`` and each finished stage is logged as a
``stage.done`` event on the ``treeq.stages`` logger.

Without ``--verbose``, :func:`stage` yields None and :func:`record` does
nothing; the only cost is one ContextVar lookup per call.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Concatenate, ParamSpec, TypeVar

import structlog

from treeq.services.result import ServiceResult

_reporting: ContextVar[bool] = ContextVar("_reporting", default=False)
_active_run: ContextVar[RunReport | None] = ContextVar("_active_run", default=None)

Count = int | bool | str


def _now_ms() -> float:
    return time.perf_counter() * 1000


@dataclass
class Stage:
    """One step of a run and the counts it produced."""

    name: str
    started_ms: float = field(default_factory=_now_ms)
    elapsed_ms: float = 0.0
    counts: dict[str, Count] = field(default_factory=dict)

    def finish(self) -> None:
        self.elapsed_ms = _now_ms() - self.started_ms

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "elapsed_ms": round(self.elapsed_ms, 2), "counts": self.counts}


@dataclass
class RunReport:
    """All stages of one service call, in the order they ran."""

    op: str
    started_ms: float = field(default_factory=_now_ms)
    elapsed_ms: float = 0.0
    stages: list[Stage] = field(default_factory=list)

    def finish(self) -> None:
        self.elapsed_ms = _now_ms() - self.started_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.op,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "stages": [s.to_dict() for s in self.stages],
        }


@contextmanager
def stage(name: str) -> Iterator[Stage | None]:
    """Time the enclosed block as stage *name* of the active run."""
    run = _active_run.get()
    if run is None:
        yield None
        return

    current = Stage(name)
    run.stages.append(current)
    try:
        yield current
    finally:
        current.finish()
        structlog.get_logger("treeq.stages").debug(
            "stage.done",
            op=run.op,
            stage=name,
            elapsed_ms=round(current.elapsed_ms, 2),
            counts=current.counts,
        )


def record(**counts: Count) -> None:
    """Attach counts to the latest stage of the active run, if there is one."""
    run = _active_run.get()
    if run is not None and run.stages:
        run.stages[-1].counts.update(counts)


_S = TypeVar("_S")
_P = ParamSpec("_P")


def reported(
    op: str,
) -> Callable[
    [Callable[Concatenate[_S, _P], ServiceResult]], Callable[Concatenate[_S, _P], ServiceResult]
]:
    """Decorate a service method so verbose runs carry a stage report.

    The report is attached to failed results too, so a verbose run shows
    how far it got.
    """

    def decorate(
        func: Callable[Concatenate[_S, _P], ServiceResult],
    ) -> Callable[Concatenate[_S, _P], ServiceResult]:
        @functools.wraps(func)
        def wrapper(self: _S, *args: _P.args, **kwargs: _P.kwargs) -> ServiceResult:
            if not _reporting.get():
                return func(self, *args, **kwargs)

            run = RunReport(op)
            token = _active_run.set(run)
            try:
                result = func(self, *args, **kwargs)
            finally:
                run.finish()
                _active_run.reset(token)

            structlog.get_logger("treeq.stages").debug(
                "run.done",
                op=op,
                ok=result.ok,
                stages=len(run.stages),
                elapsed_ms=round(run.elapsed_ms, 2),
            )
            meta = {**(result.meta or {}), "stages": run.to_dict()}
            return result.model_copy(update={"meta": meta})

        return wrapper

    return decorate


def enable_reporting() -> None:
    """Turn stage reports on (AppContext does this for ``--verbose``)."""
    _reporting.set(True)


def disable_reporting() -> None:
    _reporting.set(False)


def active_run() -> RunReport | None:
    return _active_run.get()
