"""Pydantic schema for configuration validation."""

import hashlib
import json
from decimal import Decimal
from typing import Any, Dict, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..engine.fixed_point import SECONDS_PER_DAY, to_units, to_wad


class PoolSettings(BaseModel):
    """Static pool parameters."""
    pool_address: str = Field(default="pool", min_length=1, description="Pool account in both tokens")
    admin: str = Field(default="admin", min_length=1, description="Administrative owner")
    reward_vault: str = Field(default="vault", min_length=1, description="Account rewards are paid from")
    cooldown_seconds: int = Field(default=7 * SECONDS_PER_DAY, ge=0, description="Redemption cooldown")
    seconds_per_year: int = Field(default=365 * SECONDS_PER_DAY, gt=0, description="Annualization base")
    token_decimals: int = Field(default=18, ge=0, le=36, description="Decimals of both assets")

    def to_units(self, amount: Union[float, str, Decimal]) -> int:
        """Convert a whole-token amount to base units."""
        return to_units(amount, self.token_decimals)


class CampaignSettings(BaseModel):
    """Initial campaign, in human units."""
    reward_budget: float = Field(gt=0, description="Reward budget in whole tokens")
    duration_days: float = Field(gt=0, description="Campaign length in days")
    rate: float = Field(gt=0, le=10, description="Annualized yield (0.10 = 10%)")

    @property
    def duration_seconds(self) -> int:
        return int(self.duration_days * SECONDS_PER_DAY)

    @property
    def rate_wad(self) -> int:
        return to_wad(self.rate)


class Simulation(BaseModel):
    """Scenario simulation parameters."""
    num_users: int = Field(gt=0, default=10, description="Number of simulated depositors")
    num_steps: int = Field(gt=0, default=200, description="Number of operations to simulate")
    step_seconds: int = Field(gt=0, default=6 * 3600, description="Clock advance per step")
    random_seed: int = Field(default=42, description="Random seed for reproducibility")
    initial_balance: float = Field(gt=0, default=10_000.0, description="Staked-asset balance per user")
    vault_funding: float = Field(ge=0, default=5_000.0, description="Reward tokens held by the vault")
    mean_stake: float = Field(gt=0, default=250.0, description="Mean size of a single deposit")
    stake_weight: float = Field(ge=0, default=0.40, description="Relative frequency of deposits")
    request_weight: float = Field(ge=0, default=0.20, description="Relative frequency of redemption requests")
    redeem_weight: float = Field(ge=0, default=0.20, description="Relative frequency of redemptions")
    claim_weight: float = Field(ge=0, default=0.20, description="Relative frequency of reward claims")
    extend_probability: float = Field(
        ge=0, le=1, default=0.0,
        description="Chance per step that the admin extends the campaign"
    )

    @field_validator("step_seconds", mode="before")
    @classmethod
    def coerce_step_seconds(cls, v):
        """Ensure step_seconds is stored as an int."""
        if v is None:
            return v
        return int(v)

    @model_validator(mode="after")
    def validate_weights(self):
        """At least one action must be possible."""
        total = self.stake_weight + self.request_weight + self.redeem_weight + self.claim_weight
        if total <= 0:
            raise ValueError("Action weights must not all be zero")
        return self

    @property
    def action_probabilities(self) -> Dict[str, float]:
        weights = {
            "stake": self.stake_weight,
            "request_redeem": self.request_weight,
            "redeem": self.redeem_weight,
            "claim": self.claim_weight,
        }
        total = sum(weights.values())
        return {name: w / total for name, w in weights.items()}


class Config(BaseModel):
    """Complete configuration for a staking pool scenario."""
    pool: PoolSettings = Field(default_factory=PoolSettings)
    campaign: CampaignSettings
    simulation: Simulation = Field(default_factory=Simulation)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
