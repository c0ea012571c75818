"""Configuration management for the rate engine."""
import os
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv
from rate_engine.utils.errors import ConfigurationError
from rate_engine.utils.logging import setup_logging
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"


def resolve_config_path(config_path: str) -> Path:
    """Resolve a relative config path against RATE_ENGINE_ROOT or the
    nearest ancestor directory holding a pyproject.toml."""
    path = Path(config_path).expanduser()
    if path.is_absolute():
        return path

    env_root = os.getenv("RATE_ENGINE_ROOT")
    if env_root:
        return (Path(env_root).expanduser() / path).resolve()

    if path.exists():
        return path.resolve()

    for parent in Path(__file__).resolve().parents:
        if (parent / "pyproject.toml").exists():
            return (parent / path).resolve()
    return path.resolve()


class Config:
    """Application configuration."""
    
    def __init__(self, config_path: str = DEFAULT_CONFIG_FILE, configure_logging: bool = True):
        """
        Initialize configuration.
        
        Args:
            config_path: Path to YAML configuration file
            configure_logging: Apply the ``logging`` section on load
        """
        self.config_path = resolve_config_path(config_path)
        self._config: Dict[str, Any] = {}
        self._load(configure_logging)
    
    def _load(self, configure_logging: bool) -> None:
        """Load configuration from YAML and environment."""
        load_dotenv()
        
        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")
        
        with open(self.config_path, 'r') as f:
            try:
                self._config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}")
        
        if not self._config:
            raise ConfigurationError(f"Empty configuration file: {self.config_path}")
        
        self._validate()
        
        if configure_logging:
            log_config = self._config.get('logging', {})
            setup_logging(
                level=os.getenv('LOG_LEVEL', log_config.get('level', 'INFO')),
                log_file=log_config.get('file'),
                format_type=log_config.get('format', 'json'),
                enabled=log_config.get('enabled', True)
            )
        
        logger.info("Configuration loaded successfully")
    
    def _validate(self) -> None:
        """Validate required configuration sections."""
        required_sections = ['app', 'rates']
        
        for section in required_sections:
            if section not in self._config:
                raise ConfigurationError(f"Missing required config section: {section}")
        
        interval = self._config['rates'].get('refresh_interval_seconds', 60)
        if not isinstance(interval, (int, float)) or interval <= 0:
            raise ConfigurationError(
                f"rates.refresh_interval_seconds must be a positive number, got: {interval}"
            )
    
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-separated key.
        
        Args:
            key: Dot-separated key (e.g., "rates.refresh_interval_seconds")
            default: Default value if key not found
        
        Returns:
            Configuration value
        """
        keys = key.split('.')
        value = self._config
        
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        
        return value
    
    def get_env(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get environment variable."""
        return os.getenv(key, default)
    
    @property
    def app_name(self) -> str:
        return self.get('app.name', 'Trading Journal Rate Engine')
    
    @property
    def base_currency(self) -> str:
        return str(self.get('rates.base_currency', 'USD')).upper()
    
    @property
    def default_primary(self) -> str:
        return str(self.get('rates.default_primary', self.base_currency)).upper()
    
    @property
    def refresh_interval(self) -> float:
        """Seconds between periodic refreshes."""
        return float(self.get('rates.refresh_interval_seconds', 60))
    
    @property
    def stale_after(self) -> float:
        """Age in seconds after which rates are refreshed at startup."""
        return float(self.get('rates.stale_after_seconds', 1800))
    
    @property
    def initial_delay(self) -> float:
        return float(self.get('rates.initial_delay_seconds', 2))
    
    @property
    def rate_source(self) -> str:
        return self.get('rates.source', 'composite')


# Global config instance
_config: Optional[Config] = None


def load_config(config_path: str = DEFAULT_CONFIG_FILE) -> Config:
    """Load and return global configuration instance."""
    global _config
    if _config is None:
        _config = Config(config_path)
    return _config


def get_config() -> Config:
    """Get global configuration instance."""
    if _config is None:
        raise ConfigurationError("Configuration not loaded. Call load_config() first.")
    return _config


def reset_config() -> None:
    """Drop the global configuration instance."""
    global _config
    _config = None
