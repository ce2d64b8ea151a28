"""
Configuration loader for poolvault.

What it does:
- Reads static settings from `config/config.yaml`.
- Resolves the operator identity from an environment variable using a
  pool-derived prefix: `{pool.id.upper().replace('-', '_')}_OPERATOR`.
  Example: `USDC_MAIN_OPERATOR`.
- Validates the resulting configuration using Pydantic models.

Where it is used:
- Called by `poolvault.main` to build a `Settings` object for runtime.

Key outputs:
- `Settings` model containing the pool, audit, metrics and journal sections plus
  the validated operator identity.
"""

import os
import yaml
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class PoolConfig(BaseModel):
    """Identity and arithmetic of the pool."""
    id: str
    account: str
    asset_symbol: str = "USDC"
    decimals: int = Field(6, ge=0, le=36)
    width_bits: int = Field(256, ge=8, le=256)
    receipt_token: bool = False
    receipt_symbol: str = "rcpt"


class AuditConfig(BaseModel):
    path: Optional[str] = "data/audit/overrides.jsonl"


class MetricsConfig(BaseModel):
    port: int = 8000


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    pool: PoolConfig
    operator: str
    audit: AuditConfig = AuditConfig()
    metrics: MetricsConfig = MetricsConfig()
    journal_dir: str = "data"

    @field_validator("operator")
    @classmethod
    def not_empty(cls, v, info):
        if not v:
            raise ValueError(f"Missing required identity: {info.field_name}")
        return v


def operator_env_var(pool_id: str) -> str:
    return f"{pool_id.replace('-', '_').upper()}_OPERATOR"


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Load YAML config, resolve the operator from the environment, and return Settings."""
    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}
    pool = PoolConfig(**config["pool"])
    env_var = operator_env_var(pool.id)
    operator = os.getenv(env_var, "")
    if not operator:
        raise ValueError(f"Missing operator identity. Expected env var: {env_var}")
    return Settings(
        pool=pool,
        operator=operator,
        audit=AuditConfig(**(config.get("audit") or {})),
        metrics=MetricsConfig(**(config.get("metrics") or {})),
        journal_dir=config.get("journal_dir", "data"),
    )
