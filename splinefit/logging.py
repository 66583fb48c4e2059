"""
Logging for splinefit.

The ``splinefit`` logger is driven by a LoggingConfig section. Without an
explicit section the defaults are overridden by SPLINEFIT_LOGGING_LEVEL,
SPLINEFIT_LOGGING_FORMAT and SPLINEFIT_LOGGING_FILE, the same variables
ConfigManager layers over a config file.

Solver and fitter code log through the LOG_* helpers and time their hot
paths with ``profile_scope`` or ``@timed``; the CLI benchmark aggregates
fit timings with TimeTracker.
"""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, List, NamedTuple, Optional, TypeVar

import numpy as np

from splinefit.config import LoggingConfig

F = TypeVar("F", bound=Callable[..., Any])

ROOT_LOGGER = "splinefit"

FORMATS = {
    "default": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    "json": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
}


# =============================================================================
# Logger Setup
# =============================================================================

_logger: Optional[logging.Logger] = None
_installed: List[logging.Handler] = []


def level_from_config(config: LoggingConfig) -> int:
    """Numeric level of ``config.level``; unknown names mean INFO."""
    level = logging.getLevelName(str(config.level).upper())
    return level if isinstance(level, int) else logging.INFO


def format_from_config(config: LoggingConfig) -> str:
    """Format string for ``config.format``; unknown names mean "default"."""
    return FORMATS.get(str(config.format).lower(), FORMATS["default"])


def setup_logging(
    config: Optional[LoggingConfig] = None,
    level: Optional[int] = None,
    force: bool = False,
) -> logging.Logger:
    """Configure the ``splinefit`` logger from a logging section.

    Args:
        config: Section to apply (default: LoggingConfig.from_env()).
        level: Numeric level overriding ``config.level`` (CLI verbosity).
        force: Replace the handlers installed by an earlier call.

    Returns:
        The ``splinefit`` logger.
    """
    global _logger, _installed

    if _logger is not None and not force:
        return _logger

    if config is None:
        config = LoggingConfig.from_env()

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in _installed:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(format_from_config(config))
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level if level is not None else level_from_config(config))
    logger.propagate = False

    _logger = logger
    _installed = handlers
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the ``splinefit`` logger or one of its children.

    ``name`` may be a bare suffix ("banded") or a module path already under
    the package ("splinefit.banded").
    """
    root = _logger if _logger is not None else setup_logging()
    if not name or name == ROOT_LOGGER:
        return root
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return root.getChild(name)


def LOG_DEBUG(msg: str, *args: Any, **kwargs: Any) -> None:
    get_logger().debug(msg, *args, **kwargs)


def LOG_INFO(msg: str, *args: Any, **kwargs: Any) -> None:
    get_logger().info(msg, *args, **kwargs)


def LOG_WARN(msg: str, *args: Any, **kwargs: Any) -> None:
    get_logger().warning(msg, *args, **kwargs)


def LOG_ERROR(msg: str, *args: Any, **kwargs: Any) -> None:
    get_logger().error(msg, *args, **kwargs)


# =============================================================================
# Timing
# =============================================================================


@contextmanager
def profile_scope(name: str, log_level: int = logging.DEBUG):
    """Log the wall time spent in the block.

    Example:
        with profile_scope("tangent solve"):
            system.solve(rhs)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        get_logger().log(log_level, f"{name} took {time.perf_counter() - start:.6f}s")


def timed(func: F) -> F:
    """Decorator running ``func`` inside a DEBUG ``profile_scope``."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        with profile_scope(func.__qualname__):
            return func(*args, **kwargs)

    return wrapper  # type: ignore


class TimingStats(NamedTuple):
    count: int
    mean_ms: float
    median_ms: float
    max_ms: float


class TimeTracker:
    """Collects repeated timings of one operation.

    Example:
        tracker = TimeTracker("fit")
        for points in batches:
            with tracker.measure():
                fitter.fit(points)
        tracker.log_stats()
    """

    def __init__(self, name: str):
        self.name = name
        self._times_ms: List[float] = []

    def __len__(self) -> int:
        return len(self._times_ms)

    def record(self, elapsed_ms: float) -> None:
        self._times_ms.append(float(elapsed_ms))

    @contextmanager
    def measure(self):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record((time.perf_counter() - start) * 1000.0)

    def stats(self) -> TimingStats:
        if not self._times_ms:
            return TimingStats(0, 0.0, 0.0, 0.0)
        times = np.asarray(self._times_ms)
        return TimingStats(
            len(times), float(times.mean()), float(np.median(times)), float(times.max())
        )

    def log_stats(self, log_level: int = logging.INFO) -> None:
        s = self.stats()
        if s.count == 0:
            get_logger().log(log_level, f"{self.name}: no timings recorded")
            return
        get_logger().log(
            log_level,
            f"{self.name}: {s.count} runs, mean {s.mean_ms:.3f} ms, "
            f"median {s.median_ms:.3f} ms, max {s.max_ms:.3f} ms",
        )

    def reset(self) -> None:
        self._times_ms = []
