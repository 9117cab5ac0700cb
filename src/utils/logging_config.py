"""Unified logging configuration for render drivers and tests.

Provides consistent logging for anything that renders image trees:
    - Console and file handlers (optional size/time rotation)
    - JSON output mode for ingestion
    - Contextual fields (app, scene, band) attached to every record
    - Warning capture (Python warnings → logging)

Public API:
    setup_logging(**render_cfg.logging, context={"app": "render"})
    push_context(scene="checker.yaml")
    pop_context(keys=["scene"])

Format examples:
    Human: 2026-10-19T13:45:12.345Z | INFO     | app=render scene=checker.yaml | Rendered 512x512
    JSON: {"t":"2026-10-19T13:45:12.345000+00:00","lvl":"INFO","scene":"checker.yaml","msg":"..."}

Context uses contextvars for thread isolation; the renderer copies the
caller's context into each of its worker threads.
Idempotent: repeated setup_logging() calls don't duplicate handlers.
"""

import contextvars
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


_context_var = contextvars.ContextVar('logging_context', default={})

# Handlers installed by setup_logging (removed again on reconfiguration)
_installed_handlers: List[logging.Handler] = []


class ContextFormatter(logging.Formatter):
    """Formatter that appends contextual fields to each record.

    Supports:
        - Human-readable format with colors (optional)
        - JSON format for machine ingestion
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m'
    }

    def __init__(
        self,
        fmt_mode: str = "human",
        use_color: bool = True,
        tz: str = "UTC"
    ):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"Unknown fmt_mode: {fmt_mode}. Use 'human' or 'json'.")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()
        self.tz = tz

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get()

        if self.tz == "UTC":
            ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        else:
            ts = datetime.fromtimestamp(record.created)

        if self.fmt_mode == "json":
            return self._format_json(record, ts, context)
        return self._format_human(record, ts, context)

    def _format_json(self, record: logging.LogRecord, ts: datetime, context: dict) -> str:
        log_dict = {
            't': ts.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
            'msg': record.getMessage()
        }
        log_dict.update(context)

        if record.exc_info:
            log_dict['exc'] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)

    def _format_human(self, record: logging.LogRecord, ts: datetime, context: dict) -> str:
        ts_str = ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.COLORS['RESET']}"

        parts = [ts_str, '|', level, '|']
        context_str = ' '.join(f"{k}={v}" for k, v in context.items())
        if context_str:
            parts.extend([context_str, '|'])
        parts.append(record.getMessage())

        line = ' '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    rotate: Optional[Dict[str, Any]] = None,
    tz: str = "UTC",
    capture_warnings: bool = True,
    quiet_libs: Optional[List[str]] = None,
    context: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Configure root logger (idempotent).

    Parameters
    ----------
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"
    log_file : str, optional
        Log file path; None for no file logging
    json : bool
        Use JSON format in the log file, default False
    color : bool
        Use ANSI colors in console output, default True
    to_stderr : bool
        Log to stderr (console), default True
    rotate : dict, optional
        Rotation config:
        - {"mode": "size", "max_bytes": 10_000_000, "backup_count": 5}
        - {"mode": "time", "when": "D", "interval": 1, "backup_count": 7}
    tz : str
        Timezone for timestamps, "UTC" (default) or "local"
    capture_warnings : bool
        Capture Python warnings to logging, default True
    quiet_libs : list[str], optional
        Library names to set to WARNING level (default: ["PIL"])
    context : dict, optional
        Initial contextual fields (e.g., {"app": "render"})

    Returns
    -------
    dict
        Configuration info: {"handlers": [...]}

    Examples
    --------
    >>> setup_logging(log_level="INFO", log_file="outputs/logs/render.log",
    ...               context={"app": "render"})
    """
    root = logging.getLogger()

    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    root.setLevel(getattr(logging, log_level.upper()))

    if to_stderr:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ContextFormatter("human", color, tz))
        _installed_handlers.append(console_handler)

    if log_file:
        _installed_handlers.append(_create_file_handler(log_file, rotate, json, tz))

    for handler in _installed_handlers:
        root.addHandler(handler)

    if context:
        push_context(**context)

    for lib in (quiet_libs if quiet_libs is not None else ["PIL"]):
        logging.getLogger(lib).setLevel(logging.WARNING)

    if capture_warnings:
        logging.captureWarnings(True)

    return {'handlers': list(_installed_handlers)}


def _create_file_handler(
    log_file: str,
    rotate: Optional[Dict[str, Any]],
    json_format: bool,
    tz: str
) -> logging.Handler:
    """Create file handler with optional rotation."""
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    if rotate:
        mode = rotate.get('mode', 'size')
        if mode == 'size':
            handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=rotate.get('max_bytes', 10_000_000),
                backupCount=rotate.get('backup_count', 5)
            )
        elif mode == 'time':
            handler = logging.handlers.TimedRotatingFileHandler(
                log_path,
                when=rotate.get('when', 'D'),
                interval=rotate.get('interval', 1),
                backupCount=rotate.get('backup_count', 7)
            )
        else:
            raise ValueError(f"Unknown rotation mode: {mode}. Use 'size' or 'time'.")
    else:
        handler = logging.FileHandler(log_path)

    fmt_mode = "json" if json_format else "human"
    handler.setFormatter(ContextFormatter(fmt_mode, use_color=False, tz=tz))
    return handler


def push_context(**kwargs) -> None:
    """Add contextual fields to all subsequent log records.

    Examples
    --------
    >>> push_context(app="render")
    >>> push_context(scene="checker.yaml")
    >>> logger.info("Done")  # → "... | app=render scene=checker.yaml | Done"
    """
    _context_var.set({**_context_var.get(), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove contextual fields; all of them when keys is None."""
    if keys is None:
        _context_var.set({})
        return
    _context_var.set({k: v for k, v in _context_var.get().items() if k not in keys})
