# src/url_analyser/managers/config_manager.py
import json
import logging
from typing import Any, Dict, Optional

from url_analyser.model import AnalyserSettings, ServerSettings
from url_analyser.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Process-wide view of settings.json.
    Raw values are read with dotted paths; the analyser and server get typed settings objects.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._config = {}
            cls._instance.reset()
        return cls._instance

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """Looks up a dotted path such as 'analyser.concurrency'; missing or null values give `default`."""
        node: Any = self._config
        for key in key_path.split('.'):
            if not isinstance(node, dict) or node.get(key) is None:
                return default
            node = node[key]
        return node

    def reset(self) -> None:
        """(Re)loads settings.json; an unreadable file leaves an empty configuration."""
        config_path = PathUtils.get_settings_path()
        config: Dict[str, Any] = {}
        if not config_path.exists():
            logger.warning("settings.json not found at %s. Using empty config.", config_path)
        else:
            try:
                config = json.loads(config_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.error("Failed to load %s: %s", config_path, e)
        self._config = config
        logger.debug("Configuration loaded from %s", config_path)

    # -------- Typed views --------

    def analyser_settings(self, **overrides: Any) -> AnalyserSettings:
        """Analyser defaults from the 'analyser' block, with non-None keyword overrides applied."""
        values = dict(self.get_nested("analyser", {}))
        values.update({k: v for k, v in overrides.items() if v is not None})
        return AnalyserSettings(**values)

    def server_settings(self, env: Optional[str] = None) -> ServerSettings:
        """Returns the server settings for an environment (default: 'server.default_env')."""
        env = env or self.get_nested("server.default_env", "dev")
        environments = self.get_nested("environments", {})
        if env not in environments:
            raise KeyError(f"Unknown environment '{env}'. Options: {sorted(environments)}")
        return ServerSettings(env=env, **environments[env])


config_manager = ConfigManager()
