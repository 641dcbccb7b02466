"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from groundwork.config import settings

# Remove default handler
logger.remove()

# Add console handler with color
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[component]}</cyan> - <level>{message}</level>",
    level=settings.app_log_level.upper(),
    colorize=True,
)

if settings.log_to_file:
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(exist_ok=True)
    logger.add(
        log_dir / "groundwork_{time:YYYY-MM-DD}.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]} | {name}:{function}:{line} - {message}",
        level="DEBUG",
        rotation="00:00",  # New file at midnight
        retention="7 days",
        compression="zip",
    )

logger.configure(extra={"component": "groundwork"})

# Reduce noise from framework/network libraries
for logger_name in (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "hpack",
    "openai._base_client",
    "asyncio",
):
    logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def get_logger(component: str):
    """Return a loguru logger bound to a pipeline component name."""
    return logger.bind(component=component)


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log an LLM API call."""
    call_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "model": model,
        "caller": caller,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "duration_ms": duration_ms,
        "status": status,
        "error": error,
    }
    llm_logger = logger.bind(component="llm")
    if error:
        llm_logger.error(f"LLM_CALL_FAILED: {call_data}")
    else:
        llm_logger.info(f"LLM_CALL: {call_data}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.bind(component="events").info(f"EVENT: {event_data}")
