"""Configuration schema and loader."""

from .loader import config_from_dict, load_config
from .schema import CampaignSettings, Config, PoolSettings, Simulation

__all__ = [
    "Config",
    "PoolSettings",
    "CampaignSettings",
    "Simulation",
    "load_config",
    "config_from_dict",
]
