"""Structured logging for lesson generation runs.

Every record is one JSON object on stderr. Lesson fields passed through
``extra`` (``section``, ``error_kind``, ``stage``) are lifted to the top level
so a run can be filtered per section; anything else lands under ``extra``.
Stdout stays free for lesson JSON and SSE frames.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional, Union

# Attributes set by LogRecord itself; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

PROMOTED_FIELDS = ("section", "error_kind", "stage")

NOISY_LIBRARIES = ("openai", "httpx", "httpcore", "instructor", "langfuse")


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, thread, message.

    The thread name matters here: section workers run on ``lesson-section-*``
    threads and progress callbacks on ``progress-dispatcher``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        for field in PROMOTED_FIELDS:
            if field in extra:
                log_data[field] = extra.pop(field)
        if extra:
            log_data["extra"] = extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def configure_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    json_format: bool = True,
    quiet_libraries: Iterable[str] = NOISY_LIBRARIES,
) -> None:
    """Configure root logging for a CLI run.

    Args:
        level: Logging level (default: INFO)
        log_file: Also append records to this file
        json_format: JSON records if True, plain text otherwise
        quiet_libraries: Loggers held at WARNING so SDK request chatter does
            not drown out section progress

    Example:
        >>> configure_logging(level="DEBUG", log_file="logs/lesson.log")
    """
    formatter: logging.Formatter
    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handlers: list = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in quiet_libraries:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={logging.getLevelName(root_logger.level)}, json_format={json_format}"
    )


@contextmanager
def generation_stage_logger(stage_name: str, **context) -> Iterator[logging.LoggerAdapter]:
    """Log the duration and outcome of one generation stage.

    Stages are the shared-context build (``context``) and each section
    (``section.<name>``). The yielded adapter tags records with the stage and
    ``context``. Exceptions are logged with the elapsed time and re-raised.

    Example:
        >>> with generation_stage_logger("section.grammar", level="B1") as log:
        ...     log.info("Building grammar prompt")
    """
    fields = {"stage": stage_name, **context}
    stage_logger = logging.getLogger(f"linguaspark.stage.{stage_name}")
    adapter = logging.LoggerAdapter(stage_logger, fields)
    start = time.perf_counter()
    stage_logger.debug(f"Stage {stage_name} started", extra={**fields, "status": "started"})

    try:
        yield adapter
    except Exception as e:
        stage_logger.error(
            f"Stage {stage_name} failed",
            extra={
                **fields,
                "status": "failed",
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                "error": str(e)[:200],
            },
            exc_info=True,
        )
        raise

    stage_logger.info(
        f"Stage {stage_name} completed",
        extra={**fields, "status": "completed", "duration_ms": round((time.perf_counter() - start) * 1000, 2)},
    )
