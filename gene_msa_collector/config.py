"""
Configuration management for the Gene MSA Collector.

This module provides configuration classes and utilities for managing
browser settings, capture thresholds, retry policies, run pacing and logging.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import List, Optional
import json


DEFAULT_BASE_URL = "https://resources.michael.salk.edu/misc/soy_superpangenome_orthobrowser_v3/index.html"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass
class BrowserConfig:
    """Browser launch and page interaction settings."""
    base_url: str = DEFAULT_BASE_URL
    headless: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    navigation_timeout_ms: int = 30000
    selector_timeout_ms: int = 10000
    typing_delay_ms: int = 50
    install_clipboard_shim: bool = True
    launch_args: List[str] = field(default_factory=lambda: [
        "--enable-features=ClipboardRead",
        "--enable-clipboard-read",
        "--no-sandbox",
        "--disable-setuid-sandbox",
    ])


@dataclass
class CaptureConfig:
    """Thresholds and wait intervals for the capture channels."""
    # Network observation
    observe_min_length: int = 100
    network_short_circuit_length: int = 1000
    network_fallback_length: int = 50

    # Clipboard / DOM fallbacks
    clipboard_min_length: int = 10
    dom_min_length: int = 50

    # Classifier
    classifier_min_length: int = 100

    # Waits (milliseconds)
    autocomplete_timeout_ms: int = 5000
    settle_timeout_ms: int = 3000
    dropdown_timeout_ms: int = 500
    export_wait_ms: int = 1000


@dataclass
class RetryConfig:
    """Configuration for per-gene retry behavior."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 1.0
    max_delay: float = 30.0


@dataclass
class RunConfig:
    """Run orchestration and output settings."""
    genes_csv: str = "genes.csv"
    output_dir: str = "output"
    failed_dir: str = "output/failed"
    failure_log_name: str = "failed_genes.json"
    artifact_extension: str = ".txt"
    delay_between_genes: float = 2.0
    progress_interval: int = 10
    test_mode: bool = False
    test_limit: int = 5


@dataclass
class LoggingConfig:
    """Logging system configuration."""
    level: str = "INFO"
    format: str = "text"
    log_file: Optional[str] = None
    max_file_size_mb: int = 20
    backup_count: int = 3
    structured: bool = True


@dataclass
class SystemConfig:
    """Main system configuration combining all subsystem configs."""
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    run: RunConfig = field(default_factory=RunConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Create configuration from environment variables."""
        config = cls()

        # Browser configuration from environment
        if os.getenv("MSA_BASE_URL"):
            config.browser.base_url = os.getenv("MSA_BASE_URL")
        if os.getenv("HEADLESS"):
            config.browser.headless = os.getenv("HEADLESS").lower() == "true"
        if os.getenv("USER_AGENT"):
            config.browser.user_agent = os.getenv("USER_AGENT")

        # Retry configuration from environment
        if os.getenv("MAX_ATTEMPTS"):
            config.retry.max_attempts = int(os.getenv("MAX_ATTEMPTS"))
        if os.getenv("RETRY_DELAY"):
            config.retry.initial_delay = float(os.getenv("RETRY_DELAY"))

        # Run configuration from environment
        if os.getenv("DELAY_BETWEEN_GENES"):
            config.run.delay_between_genes = float(os.getenv("DELAY_BETWEEN_GENES"))
        if os.getenv("OUTPUT_DIR"):
            config.run.output_dir = os.getenv("OUTPUT_DIR")
            config.run.failed_dir = os.path.join(config.run.output_dir, "failed")
        if os.getenv("GENES_CSV"):
            config.run.genes_csv = os.getenv("GENES_CSV")

        # Logging configuration from environment
        if os.getenv("LOG_LEVEL"):
            config.logging.level = os.getenv("LOG_LEVEL")
        if os.getenv("LOG_FILE"):
            config.logging.log_file = os.getenv("LOG_FILE")

        return config

    @classmethod
    def from_file(cls, config_path: str) -> "SystemConfig":
        """Load configuration from JSON file."""
        with open(config_path, 'r') as f:
            config_data = json.load(f)

        config = cls()

        # Update each section with the keys it knows about
        for section_name in ("browser", "capture", "retry", "run", "logging"):
            if section_name not in config_data:
                continue
            section = getattr(config, section_name)
            for key, value in config_data[section_name].items():
                if hasattr(section, key):
                    setattr(section, key, value)

        return config

    def to_file(self, config_path: str) -> None:
        """Save configuration to JSON file."""
        config_data = {
            "browser": asdict(self.browser),
            "capture": asdict(self.capture),
            "retry": asdict(self.retry),
            "run": asdict(self.run),
            "logging": asdict(self.logging),
        }

        with open(config_path, 'w') as f:
            json.dump(config_data, f, indent=2)


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SystemConfig.from_env()
    return _config


def set_config(config: Optional[SystemConfig]) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def load_config_from_file(config_path: str) -> SystemConfig:
    """Load and set configuration from file."""
    config = SystemConfig.from_file(config_path)
    set_config(config)
    return config
