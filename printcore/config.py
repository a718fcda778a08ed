"""
Configuration management for the print production pipeline
Loads settings from YAML files with environment variable overrides
"""

import os
import yaml
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from loguru import logger


class SizeCatalogEntry(BaseModel):
    """Print size definition"""
    id: str
    label: str
    width_cm: float = Field(gt=0)
    height_cm: float = Field(gt=0)
    reference_dpi: int = 300


class FrameOption(BaseModel):
    """Frame shown around the poster in the room mockup"""
    id: str
    label: str
    color: str = "transparent"
    width_mm: float = 0


class AppConfig(BaseModel):
    """Main application configuration"""

    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str = "sqlite:///printcore.db"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/printcore.log"

    # Upscaler
    UPSCALE_PROVIDER: str = "replicate"
    REPLICATE_API_TOKEN: Optional[str] = None
    REPLICATE_MODEL_VERSION: str = "f121d640bd286e1fdc67f9799164c1d5be36ff74576ee11c803ae5b665dd46aa"
    UPSCALE_POLL_INTERVAL: float = 2.0
    UPSCALE_TIMEOUT: float = 300.0
    UPSCALE_MAX_RETRIES: int = 2
    DEFAULT_UPSCALE_FACTOR: int = 4
    SIZE_UPSCALE_FACTORS: Dict[str, int] = Field(default_factory=lambda: {"70x100": 8})
    LOW_RES_SOURCE_WIDTH: int = 600

    # Source dimensions assumed when the source image cannot be probed
    DEFAULT_SOURCE_WIDTH: int = 1024
    DEFAULT_SOURCE_HEIGHT: int = 1792

    # Downloads
    HTTP_TIMEOUT: float = 60.0

    # Rendering
    MASTER_TARGET_DPI: int = 150
    FINAL_DPI_DEFAULT: int = 300
    BACKGROUND_COLOR: List[int] = [255, 255, 255]

    # Storage
    STORAGE_BACKEND: str = "local"  # or "s3"
    STORAGE_ROOT: str = "storage"
    STORAGE_BASE_URL: Optional[str] = None  # file:// URLs when unset
    S3_BUCKET: Optional[str] = None
    AWS_REGION: Optional[str] = None
    S3_PUBLIC_URL: Optional[str] = None

    # Catalog
    SIZES_FILE: str = "config/sizes.yaml"
    FRAMES_FILE: str = "config/frames.yaml"


def load_yaml_config(file_path: str) -> Dict:
    """Load configuration from YAML file"""
    path = Path(file_path)
    if not path.exists():
        logger.warning(f"Config file not found: {file_path}")
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except Exception as e:
        logger.error(f"Error loading config file {file_path}: {e}")
        return {}


def load_config(environment: str = "development") -> AppConfig:
    """Load configuration with environment-specific overrides"""

    base_config = load_yaml_config("config/settings.yaml")
    env_config = load_yaml_config(f"config/settings_{environment}.yaml")

    # env file overrides base
    config_dict = {**base_config, **env_config}

    env_overrides = {
        'ENVIRONMENT': os.getenv('PRINTCORE_ENV', environment),
        'DATABASE_URL': os.getenv('DATABASE_URL'),
        'LOG_LEVEL': os.getenv('LOG_LEVEL'),
        'LOG_FILE': os.getenv('LOG_FILE'),
        'REPLICATE_API_TOKEN': os.getenv('REPLICATE_API_TOKEN'),
        'STORAGE_BACKEND': os.getenv('STORAGE_BACKEND'),
        'STORAGE_ROOT': os.getenv('STORAGE_ROOT'),
        'STORAGE_BASE_URL': os.getenv('STORAGE_BASE_URL'),
        'S3_BUCKET': os.getenv('S3_BUCKET'),
        'AWS_REGION': os.getenv('AWS_REGION'),
    }

    # Only include non-None values
    env_overrides = {k: v for k, v in env_overrides.items() if v is not None}
    config_dict.update(env_overrides)

    try:
        return AppConfig(**config_dict)
    except Exception as e:
        logger.error(f"Configuration validation error: {e}")
        return AppConfig()


# Global config instance
_config_instance = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config(os.getenv('PRINTCORE_ENV', 'development'))
    return _config_instance


def load_size_catalog(file_path: str = None) -> List[SizeCatalogEntry]:
    """Load the size catalog from YAML, falling back to the built-in one"""
    from .sizes import DEFAULT_SIZES

    config_data = load_yaml_config(file_path or get_config().SIZES_FILE)
    if not config_data.get("sizes"):
        return list(DEFAULT_SIZES)

    sizes = []
    for item in config_data["sizes"]:
        try:
            sizes.append(SizeCatalogEntry(**item))
        except Exception as e:
            logger.error(f"Error loading size config {item.get('id', 'unknown')}: {e}")

    logger.info(f"Loaded {len(sizes)} size configurations")
    return sizes


def load_frame_options(file_path: str = None) -> Dict[str, FrameOption]:
    """Load frame options from YAML, keyed by id"""
    config_data = load_yaml_config(file_path or get_config().FRAMES_FILE)
    frames = {}

    for item in config_data.get("frames", []):
        try:
            frame = FrameOption(**item)
            frames[frame.id] = frame
        except Exception as e:
            logger.error(f"Error loading frame config {item.get('id', 'unknown')}: {e}")

    logger.info(f"Loaded {len(frames)} frame configurations")
    return frames
