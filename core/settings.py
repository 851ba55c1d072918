from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load .env file from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_env_path = _PROJECT_ROOT / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

ProductType = Literal["plate_18mm", "plate_fireproof", "laminate"]


class VisionSettings(BaseModel):
    model: str = "gemini-2.5-pro"
    api_key_env: str = "GEMINI_API_KEY"
    temperature: float = Field(0.1, ge=0.0, le=2.0)
    max_output_tokens: int = Field(32768, ge=256)

    @property
    def api_key(self) -> str:
        return os.getenv(self.api_key_env, "").strip()


class CatalogSettings(BaseModel):
    directory: Path = Path("Database")
    egger_file: str = "CENNIK EGGER - Arkusz1.csv"
    woodeco_file: str = "Cennik płyt Woodeco - Sheet1.csv"
    blum_file: str = "Cennik blum.csv"
    technical_patterns: list[str] = Field(default_factory=lambda: ["Table 1", "Katalog"])

    @field_validator("technical_patterns", mode="before")
    @classmethod
    def _default_patterns(cls, value: Any) -> list[str]:
        if value is None:
            return ["Table 1", "Katalog"]
        if isinstance(value, str):
            return [value]
        return list(value)

    def resolved_directory(self) -> Path:
        if self.directory.is_absolute():
            return self.directory
        return Path.cwd() / self.directory


class EstimateSettings(BaseModel):
    # Standard EGGER full sheet
    sheet_width_mm: float = Field(2800.0, gt=0.0)
    sheet_height_mm: float = Field(2070.0, gt=0.0)
    default_product_type: ProductType = "plate_18mm"
    markup_percent: float = Field(0.0, ge=0.0)
    assembly_percent: float = Field(0.0, ge=0.0)

    @property
    def sheet_area_mm2(self) -> float:
        return self.sheet_width_mm * self.sheet_height_mm


class PostProcessSettings(BaseModel):
    # box_2d thresholds are in the 0-1000 normalized space
    edge_margin: float = Field(50.0, ge=0.0, le=500.0)
    full_height_span: float = Field(700.0, ge=0.0, le=1000.0)
    min_dimension_mm: float = Field(50.0, ge=0.0)
    max_dimension_mm: float = Field(3500.0, gt=0.0)
    wide_plinth_mm: float = Field(2000.0, gt=0.0)
    overhead_tolerance: float = Field(2.0, ge=0.0)


class Settings(BaseModel):
    vision: VisionSettings = Field(default_factory=VisionSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    estimate: EstimateSettings = Field(default_factory=EstimateSettings)
    postprocess: PostProcessSettings = Field(default_factory=PostProcessSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from a YAML configuration file.

        Args:
            path: Optional path to the configuration file. Without it the
                ESTIMATOR_CONFIG environment variable is used, falling back to
                config/default.yaml in the project root.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ValueError: If the configuration is invalid.
        """
        env_path = os.getenv("ESTIMATOR_CONFIG")
        config_path = path or (Path(env_path) if env_path else _PROJECT_ROOT / "config" / "default.yaml")
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as fp:
            payload = yaml.safe_load(fp) or {}
        try:
            return cls(**payload)
        except Exception as exc:
            raise ValueError(f"Invalid configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "VisionSettings",
    "CatalogSettings",
    "EstimateSettings",
    "PostProcessSettings",
    "ProductType",
    "get_settings",
]
