"""Configuration management for the auction-sniper system."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import yaml


@dataclass
class SniperConfig:
    """Sniper identity and bidding configuration."""
    sniper_id: str = "sniper"
    stop_price: Optional[int] = None  # None = no ceiling
    items: List[str] = field(default_factory=list)


@dataclass
class AuctionConfig:
    """Auction server connection configuration."""
    url_template: str = "ws://localhost:8765/auctions/{item_id}?bidder={sniper_id}"
    open_timeout_seconds: float = 10.0
    ping_interval: float = 20.0
    ping_timeout: float = 10.0
    reconnect_delay: float = 1.0
    max_reconnect_delay: float = 60.0

    def url_for(self, item_id: str, sniper_id: str) -> str:
        """Build the auction URL for one item."""
        return self.url_template.format(item_id=item_id, sniper_id=sniper_id)


@dataclass
class DashboardConfig:
    """Status dashboard configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration for the sniper."""
    sniper: SniperConfig = field(default_factory=SniperConfig)
    auction: AuctionConfig = field(default_factory=AuctionConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        config = cls()
        section_mapping = {
            "sniper": config.sniper,
            "auction": config.auction,
            "dashboard": config.dashboard,
            "logging": config.logging,
        }
        for section_name, section_obj in section_mapping.items():
            if section_name in data:
                for key, value in (data[section_name] or {}).items():
                    if hasattr(section_obj, key):
                        setattr(section_obj, key, value)

        # Quoted YAML numbers arrive as strings; bids compare against an int
        if config.sniper.stop_price is not None:
            config.sniper.stop_price = int(config.sniper.stop_price)
        return config

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        sniper = self.sniper.__dict__.copy()
        sniper["items"] = list(self.sniper.items)
        return {
            "sniper": sniper,
            "auction": self.auction.__dict__.copy(),
            "dashboard": self.dashboard.__dict__.copy(),
            "logging": self.logging.__dict__.copy(),
        }


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, looks for:
            1. AUCTION_SNIPER_CONFIG env var
            2. ./config/default.yaml
            3. Uses default config

    Returns:
        Config object
    """
    if config_path is None:
        config_path = os.environ.get("AUCTION_SNIPER_CONFIG")

    if config_path is None:
        default_path = Path("./config/default.yaml")
        if default_path.exists():
            config_path = str(default_path)

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "r") as f:
                data = yaml.safe_load(f)
                return Config.from_dict(data or {})

    return Config()


def save_config(config: Config, config_path: str) -> None:
    """Save configuration to YAML file."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
