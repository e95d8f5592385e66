"""
Typed configuration for the essay coach.

The YAML layout mirrors the collaborators the orchestrator needs: the remote
tutoring service, the local session store, extraction tweaks and the turn log.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

TUTOR_API_BASE_ENV = "ESSAYCOACH_TUTOR_API_BASE"
DEFAULT_API_KEY_ENV = "ESSAYCOACH_TUTOR_API_KEY"


class TutorServiceSettings(BaseModel):
    """Connection info for the tutoring service."""

    model_config = ConfigDict(extra="ignore")

    api_base: str = Field(default="http://localhost:5000", description="Base URL of the tutoring service.")
    endpoint: str = Field(default="/api/chat/argumentative")
    api_key_env: str = Field(default=DEFAULT_API_KEY_ENV, description="Environment variable holding the bearer token.")
    timeout: float = Field(default=30.0, gt=0.0, le=300.0)

    @field_validator("endpoint", mode="before")
    @classmethod
    def ensure_leading_slash(cls, value: Any) -> Any:
        if isinstance(value, str) and value and not value.startswith("/"):
            return f"/{value}"
        return value

    def resolved_api_base(self) -> str:
        override = os.getenv(TUTOR_API_BASE_ENV)
        if override and override.strip():
            return override.strip()
        return self.api_base

    def resolved_api_key(self) -> str | None:
        value = os.getenv(self.api_key_env)
        if value is None or not value.strip():
            return None
        return value.strip()


class PersistenceSettings(BaseModel):
    """Local session snapshot store."""

    enabled: bool = True
    sqlite_path: Path = Field(default=Path("outputs/sessions.sqlite"))

    @field_validator("sqlite_path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Path:
        return Path(value).expanduser()


class ExtractionSettings(BaseModel):
    """Knobs for the heuristic extractor."""

    extra_hedge_markers: List[str] = Field(default_factory=list)

    @field_validator("extra_hedge_markers", mode="before")
    @classmethod
    def strip_items(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            return [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return value


class ProvenanceSettings(BaseModel):
    """Where turn events are appended (disabled when ``path`` is unset)."""

    path: Path | None = None

    @field_validator("path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value).expanduser()


class CoachConfig(BaseModel):
    """Top-level configuration consumed by the CLI and the orchestrator factory."""

    tutor: TutorServiceSettings = Field(default_factory=TutorServiceSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    provenance: ProvenanceSettings = Field(default_factory=ProvenanceSettings)


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at root of {path}, received {type(data)}")
    return data


def _resolve_config_path(value: Any, base_dir: Path) -> str:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    else:
        path = path.resolve()
    return str(path)


def _absolutize_paths(data: Dict[str, Any], base_dir: Path) -> None:
    persistence = data.get("persistence")
    if isinstance(persistence, dict) and persistence.get("sqlite_path"):
        persistence["sqlite_path"] = _resolve_config_path(persistence["sqlite_path"], base_dir)

    provenance = data.get("provenance")
    if isinstance(provenance, dict) and provenance.get("path"):
        provenance["path"] = _resolve_config_path(provenance["path"], base_dir)


def load_coach_config(path: Path | None = None, *, base_dir: Path | None = None) -> CoachConfig:
    """Load the coach config; a missing ``path`` yields the defaults."""
    if path is None:
        return CoachConfig()
    path = path.expanduser().resolve()
    data = read_yaml_file(path)
    _absolutize_paths(data, base_dir=(base_dir or path.parent).resolve())
    try:
        return CoachConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid coach config in {path}") from exc


__all__ = [
    "CoachConfig",
    "ExtractionSettings",
    "PersistenceSettings",
    "ProvenanceSettings",
    "TutorServiceSettings",
    "load_coach_config",
    "read_yaml_file",
]
