"""
Account Store Paths - Derive all directories from config/env

No hardcoded paths. All paths derived from PREDICT_CHAT_DATA_DIR.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class StorePaths:
    """
    Centralized path management for the account store.

    Default root: ~/.predict_chat/data/
    """

    def __init__(self, data_dir: Path | None = None):
        """
        Args:
            data_dir: Override data directory (for testing)
        """
        if data_dir is not None:
            self._data_dir = Path(data_dir)
        else:
            from predict_chat.config import Config

            self._data_dir = Config.get_files_config()["data_dir"]

    @property
    def data_dir(self) -> Path:
        """Root data directory (PREDICT_CHAT_DATA_DIR)"""
        return self._data_dir

    @property
    def database_file(self) -> Path:
        """DuckDB file holding accounts and vault deposits"""
        from predict_chat.config import Config

        return self._data_dir / Config.get_files_config()["database_name"]

    def ensure_directories(self) -> dict:
        """
        Create all required directories.

        Returns:
            Dict mapping directory names to creation success status
        """
        status = {}
        for name, path in [
            ("data_dir", self.data_dir),
        ]:
            try:
                path.mkdir(parents=True, exist_ok=True)
                status[name] = path.exists()
            except PermissionError as e:
                logger.error(f"Permission denied creating {name}: {path} - {e}")
                status[name] = False
            except OSError as e:
                logger.error(f"OS error creating {name}: {path} - {e}")
                status[name] = False
        return status
