"""
Configuration module for the prediction room program
Centralizes constants, environment overrides, and validation
"""

import hashlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from solders.pubkey import Pubkey


class ConfigError(Exception):
    """Configuration validation error"""
    pass


def _safe_int_env(name: str, default: int, min_val: int = None, max_val: int = None) -> int:
    """
    Safely parse integer environment variable with bounds.
    Falls back to default on invalid values.
    """
    logger_local = logging.getLogger(__name__)
    try:
        value = int(os.getenv(name, str(default)))
        if min_val is not None:
            value = max(min_val, value)
        if max_val is not None:
            value = min(max_val, value)
        return value
    except (ValueError, TypeError):
        logger_local.warning(f"Invalid {name}, using default {default}")
        return default


def _parse_pubkey(name: str, value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value.strip())
    except ValueError as e:
        raise ConfigError(f"{name} is not a valid base58 address: {value!r}") from e


class Config:
    """
    Configuration management with:
    - Grouped defaults for program, storage, and oracle settings
    - Environment variable overrides
    - Optional JSON overrides file
    - Validation
    """

    # ========== Program Identity ==========
    PROGRAM = {
        # Program id is sha256(program_seed) unless PREDICT_CHAT_PROGRAM_ID is set
        'program_seed': b'predict-chat-program',
        'max_room_id_len': 32,
        'room_seed': b'room',
        'vault_seed': b'vault',
        'prediction_seed': b'prediction',
    }

    # ========== Oracle Decoding ==========
    ORACLE = {
        'price_offset': 0,
        'price_size': 8,
        'byteorder': 'little',
        'signed': True,
    }

    # ========== Logging Settings ==========
    LOGGING = {
        'level': os.getenv('LOG_LEVEL', 'INFO'),
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'date_format': '%Y-%m-%d %H:%M:%S',
        'max_bytes': 5 * 1024 * 1024,
        'backup_count': 3,
        'console_output': True,
    }

    # ========== File Settings ==========
    @classmethod
    def get_files_config(cls) -> dict:
        """Get file configuration with lazy initialization to avoid import issues"""
        base_dir = Path.home() / '.predict_chat'
        return {
            'data_dir': Path(os.getenv('PREDICT_CHAT_DATA_DIR', str(base_dir / 'data'))),
            'log_dir': Path(os.getenv('PREDICT_CHAT_LOG_DIR', str(base_dir / 'logs'))),
            'database_name': 'predict_chat.duckdb',
        }

    # ========== Store Settings (With Validation) ==========
    @classmethod
    def get_store_config(cls) -> dict:
        """Get account store configuration with validation"""
        # 0 means unbounded
        max_accounts = _safe_int_env('PREDICT_CHAT_MAX_ACCOUNTS', 0, 0, 10_000_000)
        return {
            'max_accounts': max_accounts or None,
        }

    @classmethod
    def get_program_id(cls) -> Pubkey:
        """Program identity used as the derivation base for every address"""
        raw = os.getenv('PREDICT_CHAT_PROGRAM_ID')
        if raw:
            return _parse_pubkey('PREDICT_CHAT_PROGRAM_ID', raw)
        return Pubkey.from_bytes(hashlib.sha256(cls.PROGRAM['program_seed']).digest())

    @classmethod
    def get_settle_authorities(cls) -> List[Pubkey]:
        """Addresses allowed to settle any prediction (comma separated env list)"""
        raw = os.getenv('PREDICT_CHAT_SETTLE_AUTHORITIES', '')
        return [
            _parse_pubkey('PREDICT_CHAT_SETTLE_AUTHORITIES', item)
            for item in raw.split(',')
            if item.strip()
        ]

    def __init__(
        self,
        config_file: Optional[str] = None,
        validate: bool = True,
        ensure_directories: bool = True,
    ):
        """
        Initialize configuration with optional validation

        Args:
            config_file: Optional path to JSON config file
            validate: Whether to validate configuration on init
            ensure_directories: Create required directories on init
        """
        self._lock = threading.RLock()
        self._files_config: Optional[dict] = None
        self.config_file = config_file
        self._custom_settings = {}

        if ensure_directories:
            self.ensure_directories()

        if config_file:
            self.load_from_file(config_file)

        if validate:
            self.validate()

    @property
    def FILES(self) -> dict:
        """Cached file configuration"""
        with self._lock:
            if self._files_config is None:
                self._files_config = self.get_files_config()
            return self._files_config

    @property
    def database_path(self) -> Path:
        return self.FILES['data_dir'] / self.FILES['database_name']

    def ensure_directories(self) -> Dict[str, bool]:
        """Ensure all required directories exist, track success."""
        status: Dict[str, bool] = {}
        logger_local = logging.getLogger(__name__)
        for key in ['data_dir', 'log_dir']:
            path = self.FILES[key]
            try:
                path.mkdir(parents=True, exist_ok=True)
                status[key] = path.exists() and path.is_dir()
            except OSError as e:
                logger_local.warning(f"Could not create {key}: {e}")
                status[key] = False
        self._directory_status = status
        return status

    def validate(self):
        """
        Validate all configuration values

        Raises:
            ConfigError: If configuration is invalid
        """
        errors = []

        max_len = self.get('program', 'max_room_id_len')
        if not isinstance(max_len, int) or max_len < 1 or max_len > 32:
            errors.append("max_room_id_len must be between 1 and 32 (seed size limit)")

        if self.get('oracle', 'price_size') != 8:
            errors.append("price_size must be 8 (little-endian i64 price)")
        offset = self.get('oracle', 'price_offset')
        if not isinstance(offset, int) or offset < 0:
            errors.append("price_offset must be a non-negative integer")
        if self.get('oracle', 'byteorder') not in ('little', 'big'):
            errors.append("byteorder must be 'little' or 'big'")
        for key in ('room_seed', 'vault_seed', 'prediction_seed'):
            seed = self.get('program', key)
            if not isinstance(seed, (str, bytes)) or not 0 < len(seed) <= 32:
                errors.append(f"{key} must be a 1-32 byte seed")

        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        level = str(self.get('logging', 'level'))
        if level.upper() not in valid_levels:
            errors.append(f"Invalid log level: {level}")

        # Surfaces malformed env addresses as a validation failure
        for getter in (self.get_program_id, self.get_settle_authorities):
            try:
                getter()
            except ConfigError as e:
                errors.append(str(e))

        if hasattr(self, '_directory_status'):
            for key, success in self._directory_status.items():
                if not success:
                    errors.append(f"Required directory {key} could not be created")

        if errors:
            raise ConfigError("Configuration validation failed:\n" + "\n".join(errors))

    def load_from_file(self, filepath: Union[str, Path]):
        """
        Load configuration overrides from a JSON file

        Args:
            filepath: Path to JSON configuration file
        """
        filepath = Path(filepath)
        if not filepath.exists():
            logging.getLogger(__name__).warning(f"Config file not found: {filepath}")
            return

        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error loading config file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a JSON object: {filepath}")

        with self._lock:
            self._custom_settings = {
                section.lower(): values
                for section, values in data.items()
                if isinstance(values, dict)
            }
        logging.getLogger(__name__).info(f"Loaded configuration from {filepath}")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value with support for custom settings

        Args:
            section: Configuration section name
            key: Configuration key
            default: Default value if not found
        """
        with self._lock:
            section_lower = section.lower()
            if key in self._custom_settings.get(section_lower, {}):
                return self._custom_settings[section_lower][key]

            section_dict = getattr(self, section.upper(), None)
            if isinstance(section_dict, dict):
                return section_dict.get(key, default)

        return default

    def set(self, section: str, key: str, value: Any):
        """Set a configuration value"""
        with self._lock:
            self._custom_settings.setdefault(section.lower(), {})[key] = value

    def to_dict(self) -> dict:
        """Export configuration as a JSON-friendly dictionary"""
        with self._lock:
            custom_settings = {k: dict(v) for k, v in self._custom_settings.items()}

        return {
            'program': {
                'program_id': str(self.get_program_id()),
                'max_room_id_len': self.get('program', 'max_room_id_len'),
            },
            'oracle': {key: self.get('oracle', key) for key in self.ORACLE},
            'files': {k: str(v) for k, v in self.FILES.items()},
            'store': self.get_store_config(),
            'settle_authorities': [str(a) for a in self.get_settle_authorities()],
            'logging': self.LOGGING,
            'custom': custom_settings,
        }


# Global configuration instance.
#
# Keep this import side-effect free: directory creation and validation belong
# to an explicit startup path (see `predict_chat.cli`).
config = Config(validate=False, ensure_directories=False)
