"""
Logging configuration for ICU SL4.

Provides structured JSON logging for audit trails and debugging.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import List, Optional

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per record, suitable for log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for audit events.

    Records decisions, channel divergence, ledger appends and verification
    outcomes. Hashes are logged; clinical text never is.
    """

    def __init__(self, name: str = "icu_sl4.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        if not self._logger.isEnabledFor(level):
            return
        extra = {
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def decision_issued(
        self,
        input_hash: str,
        ast_hash: str,
        severity: str,
        require_human_ack: bool
    ) -> None:
        """Log a released decision."""
        self._log(
            logging.INFO,
            "DECISION_ISSUED",
            input_hash=input_hash,
            ast_hash=ast_hash,
            severity=severity,
            require_human_ack=require_human_ack,
            message=f"Decision issued with severity {severity}"
        )

    def divergence_detected(self, fields: List[str]) -> None:
        """Log a dual-channel disagreement. No output is released after this."""
        self._log(
            logging.ERROR,
            "CHANNEL_DIVERGENCE",
            fields=fields,
            message=f"Extraction channels diverged on {', '.join(fields)}"
        )

    def ledger_appended(self, path: str, block_hash: str) -> None:
        self._log(
            logging.INFO,
            "LEDGER_APPEND",
            path=path,
            block_hash=block_hash,
            message=f"Ledger record appended to {path}"
        )

    def ledger_append_failed(self, path: str, reason: str) -> None:
        self._log(
            logging.ERROR,
            "LEDGER_APPEND_FAILED",
            path=path,
            reason=reason,
            message=f"Ledger append failed: {reason}"
        )

    def verification_result(
        self,
        valid: bool,
        reason: Optional[str] = None,
        pubkey: Optional[str] = None
    ) -> None:
        """Log the outcome of a proof verification."""
        level = logging.INFO if valid else logging.WARNING
        self._log(
            level,
            "VERIFICATION_RESULT",
            valid=valid,
            reason=reason,
            pubkey=pubkey,
            message="Proof verified" if valid else f"Proof rejected: {reason}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # stderr keeps stdout free for CLI output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request ID for the current context.

    Args:
        request_id: Request ID to set, or None to generate one

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


# Global audit logger instance
audit_log = AuditLogger()
