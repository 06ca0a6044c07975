"""
Centralized logging configuration for the network builds
Debug-level file log per run plus a terse console log
"""

import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict


class ConsoleFormatter(logging.Formatter):
    """Bare messages on the console, with a blank line after stage results"""

    def format(self, record):
        message = record.getMessage()
        if "✅ Completed" in message or "❌ Failed" in message:
            return f"{message}\n"
        return message


class PipelineLogger:
    """Centralized logger configuration for the pipeline"""

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.log_file_path = None
            self.command_info = {}
            PipelineLogger._initialized = True

    def setup_logging(self,
                      version_id: str,
                      script_name: str,
                      command_args: Dict[str, Any] = None,
                      log_level: str = "INFO",
                      artifacts_dir: str = "artifacts") -> Path:
        """
        Set up dual logging (file + console)

        Args:
            version_id: Run version ID
            script_name: Name of the entry point (e.g. 'pipeline')
            command_args: Command line arguments as dictionary
            log_level: Console logging level (file always gets DEBUG)
            artifacts_dir: Base artifacts directory

        Returns:
            Path to the log file
        """
        log_dir = Path(artifacts_dir) / version_id / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        self.log_file_path = log_dir / f"{script_name}_{timestamp}.log"

        self.command_info = {
            "script": script_name,
            "version_id": version_id,
            "timestamp": datetime.now().isoformat(),
            "command_args": command_args or {},
            "python_version": sys.version.split()[0],
            "platform": sys.platform
        }

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        root_logger.setLevel(logging.DEBUG)

        file_handler = logging.FileHandler(self.log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(name)-40s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level))
        console_handler.setFormatter(ConsoleFormatter())

        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        self._write_log_header()
        return self.log_file_path

    def _write_log_header(self):
        """Write command information header to log file"""
        logger = logging.getLogger('LOGGER_CONFIG')

        logger.debug("=" * 80)
        logger.debug("NETWORK BUILD LOG")
        logger.debug("=" * 80)
        logger.debug(f"Script: {self.command_info['script']}")
        logger.debug(f"Version ID: {self.command_info['version_id']}")
        logger.debug(f"Start Time: {self.command_info['timestamp']}")
        logger.debug(f"Python Version: {self.command_info['python_version']}")

        for key, value in self.command_info['command_args'].items():
            logger.debug(f"  --{key}: {value}")

        logger.debug(f"Command Info (JSON):\n{json.dumps(self.command_info, indent=2)}")
        logger.debug("=" * 80)

    def log_error_details(self, stage: str, error: Exception):
        """Log traceback details for a failed build to the file log"""
        logger = logging.getLogger('ERROR_DETAILS')

        logger.debug(f"DETAILED ERROR INFORMATION FOR STAGE: {stage}")
        logger.debug(f"Error Type: {type(error).__name__}")
        logger.debug(f"Error Message: {error}")
        tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        logger.debug(f"Traceback:\n{tb}")

        console_logger = logging.getLogger('CONSOLE')
        console_logger.error(f"🚨 STAGE FAILED: {stage}")
        console_logger.error(f"   Error: {type(error).__name__}: {error}")
        if self.log_file_path:
            console_logger.error(f"   See log for full details: {self.log_file_path}")


def setup_pipeline_logging(version_id: str,
                           script_name: str = "pipeline",
                           command_args: Dict[str, Any] = None,
                           log_level: str = "INFO",
                           artifacts_dir: str = "artifacts") -> Path:
    """Convenience wrapper around PipelineLogger.setup_logging"""
    return PipelineLogger().setup_logging(
        version_id=version_id,
        script_name=script_name,
        command_args=command_args,
        log_level=log_level,
        artifacts_dir=artifacts_dir
    )


def get_pipeline_logger() -> PipelineLogger:
    """Get the singleton PipelineLogger instance"""
    return PipelineLogger()
