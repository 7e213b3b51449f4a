"""Logging adapters for git synchronization progress and timing."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional, Any, Generator

from .interface import GitStep, LoggerContext, SyncLogger


class StepLogger:
    """
    ``SyncLogger`` implementation backed by a stdlib ``logging.Logger``.

    Progress steps go to INFO, debug details to DEBUG and failed optional
    steps to WARNING. The function name and step travel in ``extra`` so the
    structured formatter can prefix them.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('wikisync.git_sync')

    def _extra(self, context: LoggerContext) -> Dict[str, Any]:
        return {
            'operation': context.function_name,
            'step': context.step.value,
            'dir': context.dir,
            'branch': context.branch,
        }

    def info(self, message: GitStep, context: LoggerContext) -> None:
        self.logger.info(message.value, extra=self._extra(context))

    def debug(self, message: str, context: LoggerContext) -> None:
        self.logger.debug(message, extra=self._extra(context))

    def warn(self, message: str, context: LoggerContext) -> None:
        self.logger.warning(message, extra=self._extra(context))


class StepReporter:
    """Binds a ``SyncLogger`` to one operation so call sites only pass the step."""

    def __init__(
        self,
        logger: Optional[SyncLogger],
        function_name: str,
        dir: Optional[str] = None,
        remote_url: Optional[str] = None,
        branch: Optional[str] = None,
    ):
        self.logger = logger
        self.function_name = function_name
        self.dir = dir
        self.remote_url = remote_url
        self.branch = branch

    def _context(self, step: GitStep) -> LoggerContext:
        return LoggerContext(
            function_name=self.function_name,
            step=step,
            dir=self.dir,
            remote_url=self.remote_url,
            branch=self.branch,
        )

    def progress(self, step: GitStep) -> None:
        if self.logger is not None:
            self.logger.info(step, self._context(step))

    def debug(self, message: str, step: GitStep) -> None:
        if self.logger is not None:
            self.logger.debug(message, self._context(step))

    def warn(self, message: str, step: GitStep) -> None:
        if self.logger is not None:
            self.logger.warn(message, self._context(step))


@dataclass
class PerformanceMetrics:
    """Timing of one sync operation."""
    operation: str
    duration: float
    start_time: float
    end_time: float
    context: Optional[Dict[str, Any]] = None
    success: bool = True


class PerformanceLogger:
    """Times sync operations and keeps the last measurement per operation."""

    def __init__(self, logger_name: str = 'wikisync.git_sync.performance'):
        self.logger = logging.getLogger(logger_name)
        self._metrics: Dict[str, PerformanceMetrics] = {}

    @contextmanager
    def time_operation(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.DEBUG
    ) -> Generator[None, None, None]:
        """
        Context manager for timing operations.

        Args:
            operation: Name of the operation being timed
            context: Additional context information
            log_level: Logging level for the completion message

        Yields:
            None
        """
        start_time = time.time()
        success = True
        try:
            yield
        except Exception as e:
            success = False
            self.logger.warning(f"{operation} failed after {time.time() - start_time:.3f}s: {type(e).__name__}")
            raise
        finally:
            end_time = time.time()
            duration = end_time - start_time
            self._metrics[operation] = PerformanceMetrics(
                operation=operation,
                duration=duration,
                start_time=start_time,
                end_time=end_time,
                context=context,
                success=success
            )
            if success:
                self.logger.log(log_level, f"{operation} completed in {duration:.3f}s")
                if duration > 30.0:
                    self.logger.warning(f"Slow git operation: '{operation}' took {duration:.3f}s")

    def get_metrics(self, operation: str) -> Optional[PerformanceMetrics]:
        """Last recorded metrics for an operation, if any."""
        return self._metrics.get(operation)
