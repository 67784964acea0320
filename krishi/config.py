"""
Configuration system for Krishi.

Provides TOML-based configuration for the assistant with automatic
initialization of a default config file.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Any, Optional

# Use tomllib (Python 3.11+) or fallback to tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)

DEFAULT_CONFIG_TOML = """# Krishi Configuration

[assistant]
# Starting language: "english" or "hindi"
language = "english"
# Holding the push-to-talk key at least this long opens the quick questions
long_press_seconds = 0.6
ptt_key = "f8"

[backend]
# Gemini generative-text API
model = "gemini-pro"
endpoint = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
timeout = 30  # seconds, single attempt
temperature = 0.7
top_k = 40
top_p = 0.95
max_output_tokens = 200

# API key (can also be set via GEMINI_API_KEY)
# api_key = ""

[stt]
# Speech-to-Text settings
model = "small"
device = "cpu"  # or "cuda"
threads = 4
sample_rate = 16000
silence_threshold = 0.03
silence_duration = 1.5  # seconds of silence that end an utterance
max_duration = 20.0

[tts]
# Text-to-Speech settings
provider = "edge"  # or "local" (espeak)
rate = 0.8
pitch = 1.0
voice_english = "en-US-AriaNeural"
voice_hindi = "hi-IN-SwaraNeural"
"""


class KrishiConfig:
    """
    Configuration manager for Krishi.

    Handles loading and access to all assistant configuration.
    Automatically initializes default config if none exists.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config.toml file. If None, uses default location.
        """
        if config_path:
            self.config_dir = Path(config_path).parent
            self.config_file = Path(config_path)
        else:
            # Use XDG_CONFIG_HOME or default to ~/.config
            xdg_config = os.getenv("XDG_CONFIG_HOME")
            if xdg_config:
                self.config_dir = Path(xdg_config) / "krishi"
            else:
                self.config_dir = Path.home() / ".config" / "krishi"

            self.config_file = self.config_dir / "config.toml"

        self._ensure_config_exists()
        self._config = self._load_config()

    def _ensure_config_exists(self):
        """Create default config file if it doesn't exist."""
        if not self.config_file.exists():
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self.config_file.write_text(DEFAULT_CONFIG_TOML)
            logger.info("Initialized default config at: %s", self.config_file)

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from TOML file.

        Returns:
            Parsed configuration dict
        """
        try:
            with open(self.config_file, "rb") as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("Failed to load config %s: %s", self.config_file, e)
            return self._get_default_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration as dict."""
        return tomllib.loads(DEFAULT_CONFIG_TOML)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            section: Config section (e.g., "backend", "tts")
            key: Key within section
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        return self._config.get(section, {}).get(key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get entire configuration section.

        Args:
            section: Section name

        Returns:
            Section dict or empty dict if not found
        """
        return self._config.get(section, {})

    def get_backend_config(self) -> Dict[str, Any]:
        """
        Get backend configuration with environment variable override.

        Environment variables take precedence over config file.

        Returns:
            Backend configuration dict
        """
        backend = self.get_section("backend")

        model = os.getenv("KRISHI_BACKEND_MODEL", backend.get("model", "gemini-pro"))
        endpoint = os.getenv(
            "KRISHI_BACKEND_ENDPOINT", backend.get("endpoint", DEFAULT_GEMINI_ENDPOINT)
        )
        api_key = os.getenv("GEMINI_API_KEY", backend.get("api_key", ""))

        return {
            "model": model,
            "endpoint": endpoint.format(model=model),
            "api_key": api_key if api_key else None,
            "timeout": float(backend.get("timeout", 30)),
            "temperature": float(backend.get("temperature", 0.7)),
            "top_k": int(backend.get("top_k", 40)),
            "top_p": float(backend.get("top_p", 0.95)),
            "max_output_tokens": int(backend.get("max_output_tokens", 200)),
        }

    def reload(self):
        """Reload configuration from file."""
        self._config = self._load_config()


# Global config instance
_global_config: Optional[KrishiConfig] = None


def get_config(config_path: Optional[str] = None) -> KrishiConfig:
    """
    Get global configuration instance.

    Args:
        config_path: Optional custom config path (only used on first call)

    Returns:
        KrishiConfig instance
    """
    global _global_config

    if _global_config is None:
        _global_config = KrishiConfig(config_path)

    return _global_config


def init_config(config_path: Optional[str] = None) -> KrishiConfig:
    """
    Initialize configuration system.

    This should be called once at application startup.

    Args:
        config_path: Optional custom config path

    Returns:
        KrishiConfig instance
    """
    global _global_config
    _global_config = KrishiConfig(config_path)
    return _global_config
