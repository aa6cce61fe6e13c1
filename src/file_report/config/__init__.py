"""Settings and per-run reporting configuration."""

from file_report.config.settings import FileReportConfig, Settings, get_settings, is_enabled

__all__ = ["FileReportConfig", "Settings", "get_settings", "is_enabled"]
