"""
Configuration Management for Cup
Centralizes logging setup, environment-based process settings and loading
of the JSON config file
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from pydantic import ValidationError

from cup.models.config_models import CupConfig
from cup.updates.errors import ConfigError

logger = logging.getLogger(__name__)

# Config file options that can be set through the environment
ENV_OVERRIDES = {
    'CUP_AGENT': 'agent',
    'CUP_IGNORE_UPDATE_TYPE': 'ignore_update_type',
    'CUP_REFRESH_INTERVAL': 'refresh_interval',
    'CUP_SOCKET': 'socket',
    'CUP_THEME': 'theme',
}


class PollingFilter(logging.Filter):
    """Filter out health checks and report polling to reduce log noise"""
    def filter(self, record: logging.LogRecord) -> bool:
        # For uvicorn access logs, the message format is:
        # 'IP:PORT - "METHOD /path HTTP/1.1" STATUS'
        message = record.getMessage()
        if '200' in message or '200' in str(getattr(record, 'args', '')):
            if '/health' in message:
                return False
            if '/api/v3/json' in message:
                return False
        return True


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """
    Configure application logging.

    Logs go to the console; when CUP_LOG_FILE (or `log_file`) is set they are
    also written to a rotating file.
    """
    level_name = (level or os.getenv('CUP_LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    log_file = log_file or os.getenv('CUP_LOG_FILE')

    root_logger = logging.getLogger()

    # Close and clear any existing handlers so repeated setup doesn't duplicate output
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, mode=0o700, exist_ok=True)
        # Max 10MB per file, keep 5 backups
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(console_formatter)
        root_logger.addHandler(file_handler)

    # urllib3 (used by the docker SDK) is chatty at DEBUG
    logging.getLogger('urllib3').setLevel(max(log_level, logging.INFO))
    logging.getLogger('docker').setLevel(max(log_level, logging.INFO))

    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.addFilter(PollingFilter())


class AppConfig:
    """Process settings from environment variables"""

    # Server settings
    HOST = os.getenv('CUP_HOST', '0.0.0.0')
    PORT = int(os.getenv('CUP_PORT', 8000))

    # Config file
    CONFIG_PATH = os.getenv('CUP_CONFIG')

    # Logging
    LOG_LEVEL = os.getenv('CUP_LOG_LEVEL', 'INFO')

    # Registry requests
    HTTP_TIMEOUT = float(os.getenv('CUP_HTTP_TIMEOUT', 30))
    HTTP_RETRIES = int(os.getenv('CUP_HTTP_RETRIES', 3))

    @classmethod
    def validate(cls):
        """Validate configuration"""
        if cls.PORT < 1 or cls.PORT > 65535:
            raise ValueError(f"Invalid port: {cls.PORT}")

        if cls.HTTP_TIMEOUT <= 0:
            raise ValueError(f"HTTP timeout must be positive: {cls.HTTP_TIMEOUT}")

        if cls.HTTP_RETRIES < 0 or cls.HTTP_RETRIES > 10:
            raise ValueError(f"HTTP retries must be between 0 and 10: {cls.HTTP_RETRIES}")

        if cls.LOG_LEVEL.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f"Invalid log level: {cls.LOG_LEVEL}")

        return True


def load_config(path: Optional[str] = None) -> CupConfig:
    """
    Load the config file and apply CUP_ environment overrides.

    Without a path (argument or CUP_CONFIG) the defaults are used.

    Raises:
        ConfigError: the file is missing, not JSON, or fails validation
    """
    path = path or os.getenv('CUP_CONFIG')
    data = {}
    if path:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigError(f"Failed to read config file from {path}. Are you sure the file exists? ({e})")
        except ValueError as e:
            raise ConfigError(f"Config file {path} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        if data.get('version') != 3:
            raise ConfigError(
                "You are trying to run Cup with an incompatible config file! Please migrate your "
                "config file to version 3, or if you have already done so, add a `version` key "
                "with the value `3`."
            )

    for env_name, option in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is not None:
            logger.debug(f"Config option {option} overridden by {env_name}")
            data[option] = value

    try:
        config = CupConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")

    if path:
        logger.info(f"Loaded config from {path}")
    return config
