"""Utility functions and decorators."""

import asyncio
import logging.config
import structlog
import yaml
from pathlib import Path
from typing import Optional, Union
from tenacity import retry, stop_after_attempt, wait_exponential


def retry_with_backoff(
    max_retries: int = 3,
    backoff_factor: float = 1.5,
    max_wait: float = 60.0
):
    """Decorator for retry with exponential backoff."""
    return retry(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=backoff_factor, max=max_wait),
        reraise=True
    )


def setup_logging(
    config_path: Optional[Union[str, Path]] = None,
    log_level: str = "INFO",
    log_format: str = "text",
) -> None:
    """Setup structured logging configuration."""
    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
        logging.config.dictConfig(config)
    else:
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json" or config_path
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def gather_with_concurrency(
    coros: list,
    max_concurrency: Optional[int] = None,
    return_exceptions: bool = True
) -> list:
    """Execute coroutines, optionally limiting how many run at once.

    ``max_concurrency=None`` schedules every coroutine immediately.
    """
    if max_concurrency is None:
        return await asyncio.gather(*coros, return_exceptions=return_exceptions)

    semaphore = asyncio.Semaphore(max_concurrency)

    async def limited_coro(coro):
        async with semaphore:
            return await coro

    limited_coros = [limited_coro(coro) for coro in coros]
    return await asyncio.gather(*limited_coros, return_exceptions=return_exceptions)
