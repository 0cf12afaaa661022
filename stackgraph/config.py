"""
StackGraph Configuration — pydantic-settings based.

All settings are read from environment variables or .env file.
Every value has a default, so the engine runs without any environment.
"""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field

DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Scoring ──
    affinity_bonus: int = Field(default=12, description="Score added per native neighbour")
    friction_penalty: int = Field(default=35, description="Score removed per colliding neighbour")
    unknown_penalty: int = Field(
        default=3, description="Score removed per neighbour with no declared relation"
    )
    tier_excellent_min: int = Field(default=80, description="Lowest score in the excellent tier")
    tier_solid_min: int = Field(default=60, description="Lowest score in the solid tier")
    tier_risky_min: int = Field(default=40, description="Lowest score in the risky tier")

    # ── Share Codec ──
    share_max_nodes: int = Field(default=100, description="Max nodes in a share payload")
    share_max_edges: int = Field(default=300, description="Max edges in a share payload")
    share_max_encoded_length: int = Field(
        default=5000, description="Max characters of the encoded share string"
    )
    public_base_url: str = Field(
        default="http://localhost:5173", description="Base URL used for share links"
    )

    # ── Report ──
    swap_max_per_side: int = Field(default=3, description="Swap alternatives per collision endpoint")
    swap_max_total: int = Field(default=6, description="Swap alternatives per collision edge")

    # ── Static Data ──
    registry_path: str = Field(
        default=str(DATA_DIR / "registry.json"), description="Tool registry JSON file"
    )
    evidence_packs_dir: str = Field(
        default=str(DATA_DIR / "packs"), description="Directory of evidence pack JSON files"
    )
    evidence_load_policy: Literal["skip", "raise"] = Field(
        default="skip",
        description="What to do with a pack that cannot be parsed: log and skip it, or raise",
    )

    # ── Server ──
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )

    # ── Audit ──
    audit_log_path: str = Field(
        default="audit.jsonl", description="Path to JSON-lines audit log file"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance, imported by other modules
settings = Settings()
