"""Structured JSON logging for the workflow DSL engine."""
import logging
import sys
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from src.config.settings import get_settings


class WorkflowContextFilter(logging.Filter):
    """Add workflow context fields to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "workflow_id"):
            record.workflow_id = None
        if not hasattr(record, "node_id"):
            record.node_id = None
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with standardized field names."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        if getattr(record, "workflow_id", None):
            log_record["workflow_id"] = record.workflow_id
        if getattr(record, "node_id", None):
            log_record["node_id"] = record.node_id


def setup_logging(level: Optional[str] = None) -> None:
    """Configure structured JSON logging on stdout."""
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handler.setFormatter(formatter)
    handler.addFilter(WorkflowContextFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel((level or settings.log_level).upper())


def workflow_context(workflow_id: Optional[str] = None, node_id: Optional[str] = None, **kwargs: Any) -> Dict[str, Any]:
    """
    Build an `extra` dict carrying workflow context for logger calls.

    Example:
        logger.info("validated", extra=workflow_context(graph.id))
    """
    extra = kwargs.copy()
    if workflow_id:
        extra["workflow_id"] = workflow_id
    if node_id:
        extra["node_id"] = node_id
    return extra
