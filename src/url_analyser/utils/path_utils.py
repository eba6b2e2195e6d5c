# src/url_analyser/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for retrieving the package's own paths.
    """

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the url_analyser package (holds settings.json)."""
        return Path(__file__).resolve().parent.parent

    @staticmethod
    def get_settings_path() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    @staticmethod
    def get_server_root() -> Path:
        return PathUtils.get_package_root() / "server"
