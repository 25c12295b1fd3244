"""Locating, reading and writing projectrag configuration files."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import ProjectRAGConfig

USER_CONFIG_PATH = Path.home() / ".config" / "projectrag" / "config.yaml"


def _read_yaml(path: Path) -> dict:
    """Parse a YAML config file into a mapping (empty file gives ``{}``)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _anchor_project_paths(data: dict, base_dir: Path) -> dict:
    """Make relative project and index paths relative to the config file's folder."""
    for project in data.get("projects") or []:
        if not isinstance(project, dict):
            continue
        for key in ("path", "index_path"):
            value = project.get(key)
            if isinstance(value, str) and not Path(value).expanduser().is_absolute():
                project[key] = str(base_dir / value)
    return data


class ConfigManager:
    """
    Finds, validates and persists the projectrag configuration.

    Without an explicit path the first existing file among
    ``DEFAULT_CONFIG_LOCATIONS`` is used. Project paths written relative in a
    config file are taken relative to that file.
    """

    DEFAULT_CONFIG_LOCATIONS = [
        Path("projectrag.yaml"),
        USER_CONFIG_PATH,
        Path.home() / ".projectrag" / "config.yaml",
    ]

    def __init__(self, config_path: Path | None = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: ProjectRAGConfig | None = None

    def find_config_file(self) -> Path | None:
        """The config file that ``load`` would read, if any exists."""
        candidates = [self.config_path] if self.config_path else []
        candidates += self.DEFAULT_CONFIG_LOCATIONS
        return next((p for p in candidates if p.exists()), None)

    def load(self, create_if_missing: bool = False) -> ProjectRAGConfig:
        """
        Read and validate the configuration.

        Args:
            create_if_missing: Fall back to defaults when no file exists.

        Raises:
            FileNotFoundError: If no file exists and ``create_if_missing`` is False.
            ValueError: If the file is not valid YAML or fails validation.
        """
        config_file = self.find_config_file()

        if config_file is None:
            if not create_if_missing:
                searched = ", ".join(str(p) for p in self.DEFAULT_CONFIG_LOCATIONS)
                raise FileNotFoundError(f"No projectrag config found (searched {searched})")
            self._config = ProjectRAGConfig()
            return self._config

        data = _anchor_project_paths(_read_yaml(config_file), config_file.resolve().parent)
        try:
            self._config = ProjectRAGConfig.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration in {config_file}: {e}") from e

        self.config_path = config_file
        return self._config

    def save(self, config: ProjectRAGConfig | None = None, path: Path | None = None):
        """
        Write a configuration as YAML.

        Args:
            config: Configuration to write (the loaded one if None)
            path: Destination (the loaded file, or the user config, if None)
        """
        config = config or self._config
        if config is None:
            raise ValueError("No configuration to save")

        path = Path(path or self.config_path or USER_CONFIG_PATH)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                config.model_dump(mode="json"),
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )

        self.config_path = path
        self._config = config

    @property
    def config(self) -> ProjectRAGConfig:
        """The loaded configuration, loading defaults on first access."""
        if self._config is None:
            self.load(create_if_missing=True)
        return self._config


_config_manager: ConfigManager | None = None


def get_config_manager(config_path: Path | None = None) -> ConfigManager:
    """
    Get the process-wide config manager.

    Asking for a different ``config_path`` than the current manager's starts
    a new manager for that file.
    """
    global _config_manager
    if _config_manager is None or (
        config_path is not None and _config_manager.config_path != Path(config_path)
    ):
        _config_manager = ConfigManager(config_path)
    return _config_manager


def get_config(reload: bool = False) -> ProjectRAGConfig:
    """Get the current configuration, re-reading the file if ``reload``."""
    manager = get_config_manager()
    if reload:
        return manager.load(create_if_missing=True)
    return manager.config
