"""Application settings and the per-run reporting configuration."""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]

SESSION_CONFIG_PATH = "theia.fileReport"
DEFAULT_COLLATED_FILE_NAME = "workflow_files.json"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "file-report"
    report_enabled: bool = False
    report_collate: bool = False
    report_write_to_work_dir: bool = False
    collated_file_name: str = DEFAULT_COLLATED_FILE_NAME
    run_work_dir: str = ""
    s3_endpoint_url: str = ""
    s3_region: str = ""
    gcs_project: str = ""
    azure_account_url: str = ""
    azure_connection_string: str = ""

    model_config = SettingsConfigDict(
        env_prefix="FILE_REPORT_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    def default_report_config(self) -> FileReportConfig:
        return FileReportConfig(
            enabled=self.report_enabled,
            collate=self.report_collate,
            write_to_work_dir=self.report_write_to_work_dir,
            collated_file_name=self.collated_file_name or DEFAULT_COLLATED_FILE_NAME,
        )


class FileReportConfig(BaseModel):
    """Reporting switches handed over at run start."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = False
    collate: bool = False
    write_to_work_dir: bool = Field(
        default=False,
        validation_alias=AliasChoices("write_to_work_dir", "writeToWorkDir", "workdir"),
    )
    collated_file_name: str = Field(
        default=DEFAULT_COLLATED_FILE_NAME,
        min_length=1,
        validation_alias=AliasChoices("collated_file_name", "collatedFileName"),
    )

    @classmethod
    def from_session_config(cls, session_config: Mapping[str, Any] | None) -> FileReportConfig:
        """Read the ``theia.fileReport`` block of a host session configuration.

        ``true`` enables reporting with defaults; a mapping enables it and
        overrides fields; anything else leaves reporting disabled.
        """
        block = navigate(session_config, SESSION_CONFIG_PATH)
        if block is True:
            return cls(enabled=True)
        if isinstance(block, Mapping):
            overrides = {key: value for key, value in block.items() if value is not None}
            overrides.pop("enabled", None)
            if not overrides.get("collatedFileName") and not overrides.get("collated_file_name"):
                overrides.pop("collatedFileName", None)
                overrides.pop("collated_file_name", None)
            return cls.model_validate({**overrides, "enabled": True})
        return cls()


def is_enabled(session_config: Mapping[str, Any] | None) -> bool:
    block = navigate(session_config, SESSION_CONFIG_PATH)
    return block is True or isinstance(block, Mapping)


def navigate(config: Mapping[str, Any] | None, dotted_path: str) -> Any:
    """Follow a dotted path through nested mappings; flat dotted keys work too."""
    if not isinstance(config, Mapping):
        return None
    if dotted_path in config:
        return config[dotted_path]
    current: Any = config
    for key in dotted_path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    return current


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
