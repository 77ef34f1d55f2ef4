"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class ChecklistArea(BaseModel):
    id: str
    label: str


_DEFAULT_CHECKLIST = [
    ("DOOR", "Door"),
    ("CURTAIN", "Curtain"),
    ("BED", "Bed and mattress"),
    ("CHAIR_TABLE", "Table / chair"),
    ("WARDROBE", "Wardrobe"),
    ("AC", "Air conditioner"),
    ("TOILET_SINK", "Toilet and wash basin"),
    ("SHOWER_HEATER", "Shower and water heater"),
    ("WALL_FLOOR_CEILING", "Floor / wall / ceiling"),
]


class BackendConfig(BaseSettings):
    mode: str = "mock"  # mock | live
    lookup_url: str = ""
    submit_url: str = ""
    tasks_url: str = ""
    flow_detail_url: str = ""
    timeout: float = 30.0

    model_config = SettingsConfigDict(env_prefix="BACKEND_")


class ImagePipelineConfig(BaseSettings):
    max_width: int = 1024
    quality: float = 0.7
    max_upload_bytes: int = 25 * 1024 * 1024

    model_config = SettingsConfigDict(env_prefix="IMAGE_")


class VariantOverride(BaseModel):
    payload_shape: str | None = None  # nested | flat


class Settings(BaseSettings):
    variant: str = "check_in"  # check_in | check_out
    default_inspector: str = "Tenant"
    workspace_ttl_minutes: int = 120
    log_level: str = "INFO"
    backend: BackendConfig = Field(default_factory=BackendConfig)
    image_pipeline: ImagePipelineConfig = Field(default_factory=ImagePipelineConfig)
    checklist: list[ChecklistArea] = Field(default_factory=lambda: [
        ChecklistArea(id=i, label=label) for i, label in _DEFAULT_CHECKLIST
    ])
    variants: dict[str, VariantOverride] = Field(default_factory=dict)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides.

    Keys present in config.yaml are passed explicitly; anything it leaves
    out is read from the environment (``VARIANT``, ``BACKEND_MODE``,
    ``IMAGE_MAX_WIDTH``, ...).
    """
    y = _yaml
    backend = BackendConfig(**y.get("backend", {}))
    img = ImagePipelineConfig(**y.get("image_pipeline", {}))
    kwargs: dict = {}
    for key in ("variant", "default_inspector", "workspace_ttl_minutes", "log_level"):
        if key in y:
            kwargs[key] = y[key]
    if y.get("checklist"):
        kwargs["checklist"] = [ChecklistArea(**a) for a in y["checklist"]]
    if y.get("variants"):
        kwargs["variants"] = {k: VariantOverride(**(v or {})) for k, v in y["variants"].items()}
    return Settings(backend=backend, image_pipeline=img, **kwargs)
