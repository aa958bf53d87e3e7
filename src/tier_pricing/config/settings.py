"""
Centralized settings and path configuration for the tier pricing service.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    project_root: Path
    data_dir: Path

    # Catalog with base prices, one row per product
    products_csv: Path

    # One tier file per product: tiers_dir / f"{product_id}.csv"
    tiers_dir: Path

    log_file: Path
    log_level: str = "INFO"

    @classmethod
    def load(cls, project_root: Optional[Path] = None, data_dir: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        # .env values never override variables already set in the environment
        dotenv_path = root / '.env'
        if dotenv_path.exists():
            load_dotenv(dotenv_path=dotenv_path)

        if data_dir is None:
            env_dir = os.getenv("TIER_PRICING_DATA_DIR")
            data_dir = Path(env_dir) if env_dir else root / 'data'

        return cls(
            project_root=root,
            data_dir=data_dir,
            products_csv=data_dir / 'products.csv',
            tiers_dir=data_dir / 'tiers',
            log_file=data_dir / 'tier_pricing.log',
            log_level=os.getenv("TIER_PRICING_LOG_LEVEL", "INFO").upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
