"""
Logging setup and step timing for the SSL checker.
"""
import json
import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class StepTiming:
    """Outcome of one checker step, such as assembling the context or fetching the URL."""
    step: str
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: Optional[float] = None
    succeeded: Optional[bool] = None
    error: Optional[str] = None

    def as_log_context(self) -> Dict[str, Any]:
        context = {'step': self.step, 'duration_ms': round(self.duration_ms or 0.0, 3), 'succeeded': self.succeeded}
        context.update({k: v for k, v in self.details.items() if v is not None})
        if self.error:
            context['error'] = self.error
        return context


class JSONFormatter(logging.Formatter):
    """Writes one JSON object per record for the log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        check_context = getattr(record, 'check_context', None)
        if check_context:
            entry['check'] = check_context

        if record.exc_info and record.exc_info[0] is not None:
            entry['error'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


@contextmanager
def time_step(step: str, **details):
    """
    Time a checker step and log its outcome.

    Yields the StepTiming so the caller can add details that are only known
    once the step has run, e.g. the number of trust entries.
    """
    logger = logging.getLogger(__name__)
    timing = StepTiming(step=step, details=dict(details))
    start = time.perf_counter()

    try:
        yield timing
        timing.succeeded = True
    except Exception as e:
        timing.succeeded = False
        timing.error = f"{type(e).__name__}: {e}"
        raise
    finally:
        timing.duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            f"Step {step} {'succeeded' if timing.succeeded else 'failed'} in {timing.duration_ms:.1f} ms",
            extra={'check_context': timing.as_log_context()}
        )


class LoggingService:
    """Configures root logging for a checker run."""

    def __init__(self, config):
        self.config = config
        self._setup_logging()
        self.logger = logging.getLogger(__name__)
        self.logger.debug("Logging service initialized")

    def _setup_logging(self):
        """Setup console logging and, when configured, a JSON log file."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        root_logger.setLevel(log_level)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        console_handler.setLevel(log_level)
        root_logger.addHandler(console_handler)

        if self.config.log_file_path:
            Path(self.config.log_file_path).parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=self.config.log_file_path,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setFormatter(JSONFormatter())
            file_handler.setLevel(log_level)
            root_logger.addHandler(file_handler)

    def time_step(self, step: str, **details):
        """Time a checker step, see time_step()."""
        return time_step(step, **details)
