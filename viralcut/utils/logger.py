import sys
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from viralcut.config_manager import LoggingConfig

NO_JOB = "-"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[job_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[job_id]} | {name}:{function}:{line} - {message}"


def setup_logger(log_dir: str = "logs", cfg: Optional[LoggingConfig] = None, level: Optional[str] = None) -> Any:
    """
    Installs the console sink and the file sinks under ``log_dir``.

    Every record carries a ``job_id`` extra, ``"-"`` outside of a job, so the lines
    written by background pipelines can be filtered per job in any sink.

    Args:
        log_dir: Directory for the log files.
        cfg: Rotation, retention and sink levels. Defaults to ``LoggingConfig()``.
        level: Console level override (CLI ``--log-level``).
    """
    cfg = cfg or LoggingConfig()
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.configure(extra={"job_id": NO_JOB})

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level or cfg.level)
    logger.add(
        log_path / "viralcut.log",
        format=FILE_FORMAT,
        rotation=cfg.rotation,
        retention=cfg.retention,
        level="DEBUG",
        compression="zip",
    )
    if cfg.json_sink:
        logger.add(
            log_path / "viralcut.json.log",
            rotation=cfg.rotation,
            retention=cfg.retention,
            level=cfg.json_level,
            serialize=True,
        )
    logger.add(log_path / "error.log", format=FILE_FORMAT, rotation=cfg.rotation, retention=cfg.retention, level="ERROR")

    logger.info(f"Logger initialized. Logs writing to {log_path.absolute()}")
    return logger


def job_context(job_id: str) -> AbstractContextManager:
    """Tags every record logged inside the block (on this thread) with ``job_id``."""
    return logger.contextualize(job_id=job_id)
