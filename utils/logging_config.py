# utils/logging_config.py

import logging
import logging.handlers
from pathlib import Path
import json
from datetime import datetime
from typing import Optional


def setup_logging(level: str = "INFO", log_dir: Optional[str] = "logs",
                  name: str = "xray") -> logging.Logger:
    """
    Configure the root logger for a scan

    Console output goes to stderr so stdout stays reserved for the scan
    report. With log_dir set, a rotating text log and a rotating JSON log
    are written there as well.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for handler in list(root.handlers):
        if getattr(handler, '_xray_handler', False):
            root.removeHandler(handler)
            handler.close()

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    handlers = [console_handler]

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        # File handler (rotating)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{name}.log",
            maxBytes=10*1024*1024,  # 10 MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        ))

        # JSON handler for structured logs
        json_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{name}_structured.json",
            maxBytes=10*1024*1024,
            backupCount=5
        )
        json_handler.setLevel(logging.INFO)
        json_handler.setFormatter(JSONFormatter())

        handlers.extend([file_handler, json_handler])

    for handler in handlers:
        handler._xray_handler = True
        root.addHandler(handler)

    return logging.getLogger(name)


class ScanLogger:
    """
    Structured scan events on top of a regular logger
    """

    def __init__(self, name: str = "xray.scan"):
        self.logger = logging.getLogger(name)

    def log_operation(self, operation: str, level: int = logging.INFO, **kwargs):
        """Log structured operation data"""
        data = {
            'operation': operation,
            'timestamp': datetime.now().isoformat(),
            **kwargs
        }
        self.logger.log(level, json.dumps(data, default=str))


class JSONFormatter(logging.Formatter):
    """Format logs as JSON"""

    def format(self, record):
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)
