"""
Structured logging service using Loguru with request correlation IDs and environment-specific configuration.

This service provides:
- Rich console output for local development
- Rotating file logs (JSON in production) plus an error-only file
- Request correlation ID tracking across a request's log lines
"""

import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import BaseModel
from rich.console import Console
from rich.text import Text

from kanasu.core.config import settings

# Context variable for request correlation ID
correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class LogConfig(BaseModel):
    """Configuration for logging setup."""

    level: str = "INFO"
    format_json: bool = True
    enable_file_logging: bool = True
    log_file_path: str = "logs/app.log"
    max_file_size: str = "50 MB"
    retention: str = "7 days"
    enable_error_file: bool = True
    error_file_path: str = "logs/error.log"


class StructuredLogger:
    """
    Structured logging service with correlation ID support and environment-specific configuration.
    """

    def __init__(self):
        self._configured = False
        self._config = self._get_log_config()
        self._console = Console()
        self._setup_logging()

    def _get_log_config(self) -> LogConfig:
        """Get logging configuration based on environment."""
        config = LogConfig()

        environment = getattr(settings, "ENVIRONMENT", "development")
        log_level = getattr(settings, "LOG_LEVEL", "INFO")

        if environment == "development":
            config.level = log_level
            config.format_json = False
            config.enable_file_logging = True
        elif environment == "production":
            config.level = "INFO"
            config.format_json = True
            config.enable_file_logging = True
        elif environment == "test":
            config.level = "DEBUG"
            config.format_json = False
            config.enable_file_logging = False

        return config

    def _rich_console_formatter(self, record) -> str:
        """Rich-based console formatter: name | line | message, colored by level."""
        level_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold red",
        }
        color = level_colors.get(record["level"].name, "white")

        text = Text()
        text.append(record["name"] or "", style="blue")
        text.append(" | ", style="white")
        text.append(str(record["line"]), style="magenta")
        text.append(" | ", style="white")
        text.append(record["message"], style=color)

        with self._console.capture() as capture:
            self._console.print(text, end="")

        # Loguru treats the returned string as a format template
        rendered = capture.get().replace("{", "{{").replace("}", "}}")
        if record["exception"]:
            rendered += "\n{exception}"
        return rendered + "\n"

    def _setup_logging(self) -> None:
        """Configure Loguru logging based on environment."""
        if self._configured:
            return

        logger.remove()

        logger.add(
            sys.stdout,
            format=self._rich_console_formatter,
            level=self._config.level,
            serialize=False,
            filter=self._add_correlation_id,
        )

        if self._config.enable_file_logging:
            log_path = Path(self._config.log_file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_format = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{function}:{line} | correlation_id={extra[correlation_id]} | {message}"
            logger.add(
                self._config.log_file_path,
                format=file_format,
                level=self._config.level,
                rotation=self._config.max_file_size,
                retention=self._config.retention,
                serialize=self._config.format_json,
                filter=self._add_correlation_id,
                enqueue=True,  # Thread-safe logging
            )

            if self._config.enable_error_file:
                error_path = Path(self._config.error_file_path)
                error_path.parent.mkdir(parents=True, exist_ok=True)

                logger.add(
                    self._config.error_file_path,
                    format=file_format,
                    level="ERROR",
                    rotation=self._config.max_file_size,
                    retention=self._config.retention,
                    serialize=self._config.format_json,
                    filter=self._add_correlation_id,
                    enqueue=True,
                )

        self._configured = True

    def _add_correlation_id(self, record: Dict[str, Any]) -> bool:
        """Add correlation ID to log record."""
        record["extra"]["correlation_id"] = correlation_id.get() or "none"
        record["extra"]["environment"] = getattr(settings, "ENVIRONMENT", "development")
        return True

    def set_correlation_id(self, cid: Optional[str] = None) -> str:
        """Set correlation ID for request tracking."""
        if cid is None:
            cid = str(uuid.uuid4())
        correlation_id.set(cid)
        return cid

    def get_correlation_id(self) -> Optional[str]:
        return correlation_id.get()

    def clear_correlation_id(self) -> None:
        correlation_id.set(None)

    def log_api_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        user_id: Optional[str] = None,
        **extra_data: Any
    ) -> None:
        """Log API request details."""
        logger.info(
            f"{method} {path} -> {status_code} ({duration_ms:.1f} ms)",
            http_method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            user_id=user_id,
            **extra_data
        )

    def log_external_api_call(
        self,
        service: str,
        endpoint: str,
        method: str,
        status_code: int,
        duration_ms: float,
        success: bool = True,
        **extra_data: Any
    ) -> None:
        """Log external API call details (SMS gateway, object storage)."""
        logger.info(
            f"External call {service} {method} {endpoint} -> {status_code}",
            service=service,
            endpoint=endpoint,
            method=method,
            status_code=status_code,
            duration_ms=duration_ms,
            success=success,
            **extra_data
        )


# Global logger instance
structured_logger = StructuredLogger()


def get_logger(name: Optional[str] = None):
    """Get the configured logger instance, bound to the calling module name."""
    if name:
        return logger.bind(module_name=name)
    return logger


def set_correlation_id(cid: Optional[str] = None) -> str:
    """Set correlation ID for request tracking."""
    return structured_logger.set_correlation_id(cid)


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return structured_logger.get_correlation_id()


def clear_correlation_id() -> None:
    """Clear correlation ID."""
    structured_logger.clear_correlation_id()


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    user_id: Optional[str] = None,
    **extra: Any
) -> None:
    """Log API request details."""
    structured_logger.log_api_request(
        method, path, status_code, duration_ms, user_id, **extra
    )


def log_external_api_call(
    service: str,
    endpoint: str,
    method: str,
    status_code: int,
    duration_ms: float,
    success: bool = True,
    **extra: Any
) -> None:
    """Log external API call details."""
    structured_logger.log_external_api_call(
        service, endpoint, method, status_code, duration_ms, success, **extra
    )
