import logging
import os
from pathlib import Path
from typing import Any

import yaml
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import InterpolationResolutionError

from healwright.constants import (
    DEFAULT_ASSERTION_MS,
    DEFAULT_GLOBAL_WAIT_MS,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PAGE_LOAD_MS,
    BrowserVariant,
)
from healwright.exceptions import ConfigurationError
from healwright.utils import parse_bool

logger = logging.getLogger(__name__)

_MISSING = object()

ENV_OVERRIDES = {
    "HEALWRIGHT_BROWSER": "browser",
    "HEALWRIGHT_HEADLESS": "headless",
    "HEALWRIGHT_URL": "url",
    "HEALWRIGHT_THREADS": "threads",
    "HEALWRIGHT_RETRY": "retry",
}
"""Environment variables that act as explicit overrides, mapped to config keys."""


class Settings:
    """Read-only view over a fully merged configuration.

    Parameters
    ----------
    values : dict[str, Any]
        Resolved configuration tree
    environment : str
        Name of the execution environment the tree was built for
    """

    def __init__(self, values: dict[str, Any], environment: str = "dev") -> None:
        self._cfg: DictConfig = OmegaConf.create(values)
        OmegaConf.set_readonly(self._cfg, True)
        self.environment = environment

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key, returning ``default`` when absent.

        Parameters
        ----------
        key : str
            Dotted key such as ``timeouts.global_wait``
        default : Any
            Value returned when the key is absent or null

        Returns
        -------
        Any
            Plain Python value (containers are converted to dict/list)
        """
        value = OmegaConf.select(self._cfg, key, default=_MISSING)

        if value is _MISSING or value is None:
            return default

        if isinstance(value, DictConfig) or OmegaConf.is_list(value):
            return OmegaConf.to_container(value, resolve=True)

        return value

    def require(self, key: str) -> Any:
        """Look up a mandatory key.

        Raises
        ------
        ConfigurationError
            If the key is absent, null or an empty string
        """
        value = self.get(key)

        if value is None or value == "":
            logger.error("Mandatory configuration key '%s' is missing", key)
            raise ConfigurationError(
                f"Missing configuration: '{key}' must be defined in the config "
                f"files or passed as an override."
            )

        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Look up a key and coerce it to bool."""
        return parse_bool(self.get(key, default))

    def get_int(self, key: str, default: int | None = None) -> int:
        """Look up a key and coerce it to int.

        Raises
        ------
        ConfigurationError
            If the key is absent with no default, or is not numeric
        """
        value = self.get(key, default)

        if value is None:
            raise ConfigurationError(f"Missing configuration: '{key}' must be defined")

        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"'{key}' must be an integer, got {value!r}") from e

    def as_dict(self) -> dict[str, Any]:
        """Return a plain, mutable copy of the whole tree."""
        return OmegaConf.to_container(self._cfg, resolve=True)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __repr__(self) -> str:
        return f"Settings(environment={self.environment!r})"


class ConfigLoader:
    """Load and merge layered YAML configuration with defaults."""

    def __init__(self) -> None:
        self.BUILT_IN_DEFAULTS: dict[str, Any] = {
            "headless": True,
            "threads": 1,
            "retry": 0,
            "output_dir": DEFAULT_OUTPUT_DIR,
            "timeouts": {
                "global_wait": DEFAULT_GLOBAL_WAIT_MS,
                "page_load": DEFAULT_PAGE_LOAD_MS,
                "assertion": DEFAULT_ASSERTION_MS,
            },
            "capture": {
                "screenshot": {
                    "scenario": {"passed": False, "failed": True, "skipped": False},
                    "step": {"passed": False, "failed": False},
                },
            },
            "ledger": {"dir": "${output_dir}"},
            "data": {"dir": "testdata", "file": "TestData.xlsx"},
            "allure": {"results_dir": "allure-results"},
        }

    def load_config(
        self,
        config_path: str | None = None,
        env: str | None = None,
        overrides: dict[str, Any] | list[str] | None = None,
    ) -> Settings:
        """Load configuration layers and merge them by priority.

        Later layers win: built-in defaults, base file, environment file,
        ``HEALWRIGHT_*`` environment variables, then ``overrides``.

        Parameters
        ----------
        config_path : str | None
            Base YAML file. If None, checks HEALWRIGHT_CONFIG env var,
            then falls back to config/healwright.yaml
        env : str | None
            Environment name. If None, checks HEALWRIGHT_ENV, then "dev".
            Its file is ``<env>.yaml`` next to the base file
        overrides : dict[str, Any] | list[str] | None
            Explicit overrides, as a nested dict or a dotlist
            (``["browser=firefox", "timeouts.global_wait=5000"]``)

        Returns
        -------
        Settings
            Merged configuration with interpolations resolved

        Raises
        ------
        ConfigurationError
            If a file cannot be parsed or interpolation fails
        """
        if config_path is None:
            config_path = os.environ.get("HEALWRIGHT_CONFIG", "config/healwright.yaml")

        if env is None:
            env = os.environ.get("HEALWRIGHT_ENV", "dev")

        env = env.strip().lower()
        logger.info("Current execution environment: %s", env)

        base_file = Path(config_path)
        env_file = base_file.parent / f"{env}.yaml"

        layers = [OmegaConf.create(self.BUILT_IN_DEFAULTS)]

        base_cfg = self._load_file(base_file)
        if base_cfg is None:
            logger.warning("Base config not found at %s. Using built-in defaults.", base_file)
        else:
            layers.append(base_cfg)

        env_cfg = self._load_file(env_file)
        if env_cfg is None:
            logger.warning("Environment config not found at %s. Using base config only.", env_file)
        else:
            layers.append(env_cfg)

        env_dotlist = [
            f"{key}={os.environ[var]}" for var, key in ENV_OVERRIDES.items() if os.environ.get(var)
        ]
        if env_dotlist:
            layers.append(OmegaConf.from_dotlist(env_dotlist))

        if overrides:
            if isinstance(overrides, dict):
                layers.append(OmegaConf.create(overrides))
            else:
                layers.append(OmegaConf.from_dotlist(list(overrides)))

        merged = OmegaConf.merge(*layers)

        try:
            values = OmegaConf.to_container(merged, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ConfigurationError(f"Configuration variable resolution error: {e}") from e
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ConfigurationError(f"Configuration variable resolution error: {e}") from e

        return Settings(values, environment=env)

    def _load_file(self, config_file: Path) -> DictConfig | None:
        """Load one YAML layer, or None when the file does not exist.

        Raises
        ------
        ConfigurationError
            If the file exists but is not valid YAML or not a mapping
        """
        if not config_file.exists():
            return None

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise ConfigurationError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None or not isinstance(cfg, DictConfig):
            logger.warning("Config file %s is empty or not a mapping; ignoring it", config_file)
            return None

        logger.debug("Successfully loaded configuration from: %s", config_file)
        return cfg

    def validate_config(self, settings: Settings) -> None:
        """Validate configuration values and types.

        Parameters
        ----------
        settings : Settings
            Configuration to validate

        Raises
        ------
        ConfigurationError
            If configuration is invalid
        """
        self._validate_browser(settings)
        self._validate_timeouts(settings)
        self._validate_workers(settings)
        self._validate_capture(settings)

    def _validate_browser(self, settings: Settings) -> None:
        """Validate the browser variant when one is configured.

        A missing browser is not an error here; it surfaces as a fatal
        error when a worker first needs a session.
        """
        browser = settings.get("browser")

        if browser is None:
            return

        if not isinstance(browser, str):
            raise ConfigurationError("browser must be a string")

        available = [variant.value for variant in BrowserVariant]
        if browser.strip().lower() not in available:
            raise ConfigurationError(
                f"Unknown browser: {browser}. Available browsers: {available}"
            )

    def _validate_timeouts(self, settings: Settings) -> None:
        for name in ("global_wait", "page_load", "assertion"):
            value = settings.get(f"timeouts.{name}")

            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"timeouts.{name} must be an integer (milliseconds)")

            if value <= 0:
                raise ConfigurationError(f"timeouts.{name} must be positive, got {value}")

    def _validate_workers(self, settings: Settings) -> None:
        threads = settings.get("threads")
        retry = settings.get("retry")

        if isinstance(threads, bool) or not isinstance(threads, int) or threads < 1:
            raise ConfigurationError(f"threads must be an integer >= 1, got {threads!r}")

        if isinstance(retry, bool) or not isinstance(retry, int) or retry < 0:
            raise ConfigurationError(f"retry must be an integer >= 0, got {retry!r}")

    def _validate_capture(self, settings: Settings) -> None:
        flags = {
            "capture.screenshot.scenario.passed",
            "capture.screenshot.scenario.failed",
            "capture.screenshot.scenario.skipped",
            "capture.screenshot.step.passed",
            "capture.screenshot.step.failed",
        }

        for key in sorted(flags):
            value = settings.get(key)
            if value is not None and not isinstance(value, bool):
                raise ConfigurationError(f"{key} must be a boolean")
