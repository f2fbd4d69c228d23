"""Logging configuration for chat-miner.

Provides centralized logging setup with file output to ~/chat-miner/logs/.
"""

import logging
import sys
from pathlib import Path

# Default log directory
DEFAULT_LOG_DIR = Path.home() / "chat-miner" / "logs"


def setup_logging(
    name: str,
    log_dir: Path | None = None,
    level: int | str = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Configure logging for a chat-miner component.

    Creates a logger with both file and optional console handlers.
    Log files are written to ~/chat-miner/logs/<name>.log.

    Args:
        name: Logger name (used for log filename)
        log_dir: Directory for log files (defaults to ~/chat-miner/logs/)
        level: Logging level, numeric or by name (defaults to INFO)
        console: Whether to also log to stderr (defaults to True)

    Returns:
        Configured logger instance
    """
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    log_dir.mkdir(parents=True, exist_ok=True)

    # Handlers attach to the package root so module loggers propagate to them
    root = logging.getLogger("chat_miner")
    root.setLevel(level)

    logger = logging.getLogger(f"chat_miner.{name}")

    # Avoid adding duplicate handlers if already configured
    if root.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a chat-miner component.

    For full configuration with file output, use setup_logging().

    Args:
        name: Logger name (will be prefixed with 'chat_miner.')

    Returns:
        Logger instance
    """
    return logging.getLogger(f"chat_miner.{name}")
