"""Configuration: TOML profiles and logging setup."""

from predagg.config.settings import Settings, VenueConfig, configure_logging, get_settings

__all__ = ["Settings", "VenueConfig", "configure_logging", "get_settings"]
