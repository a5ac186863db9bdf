from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationMissing

PROVIDERS = ("api_sports", "mirror")
LEAGUE_MODES = ("all", "rotate")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # data provider
    provider: str = Field("api_sports", validation_alias=AliasChoices("PROVIDER", "provider"))
    api_football_key: str = Field(
        "", validation_alias=AliasChoices("API_FOOTBALL_KEY", "RAPIDAPI_KEY", "api_football_key")
    )
    api_football_base_url: str = Field(
        "https://v3.football.api-sports.io",
        validation_alias=AliasChoices("API_FOOTBALL_BASE_URL", "api_football_base_url"),
    )
    mirror_base_url: str = Field(
        "https://api-football-v1.p.rapidapi-mirror.com/v3",
        validation_alias=AliasChoices("MIRROR_BASE_URL", "mirror_base_url"),
    )
    api_season: Optional[int] = Field(None, validation_alias=AliasChoices("API_SEASON", "api_season"))
    requests_per_minute: int = Field(
        30, validation_alias=AliasChoices("REQUESTS_PER_MINUTE", "requests_per_minute")
    )
    quota_min_remaining: int = Field(
        20, validation_alias=AliasChoices("QUOTA_MIN_REMAINING", "quota_min_remaining")
    )

    # ledger
    rpc_url: str = Field("", validation_alias=AliasChoices("RPC_URL", "rpc_url"))
    contract_address: str = Field("", validation_alias=AliasChoices("CONTRACT_ADDRESS", "contract_address"))
    contract_abi_path: Optional[str] = Field(
        None, validation_alias=AliasChoices("CONTRACT_ABI_PATH", "contract_abi_path")
    )
    private_key: str = Field("", validation_alias=AliasChoices("PRIVATE_KEY", "private_key"))
    chain_id: int = Field(84532, validation_alias=AliasChoices("CHAIN_ID", "chain_id"))  # Base Sepolia
    tx_receipt_timeout: int = Field(
        120, validation_alias=AliasChoices("TX_RECEIPT_TIMEOUT", "tx_receipt_timeout")
    )

    # reconciliation policy
    league_ids: str = Field("39,140,2", validation_alias=AliasChoices("LEAGUE_IDS", "league_ids"))
    league_mode: str = Field("all", validation_alias=AliasChoices("LEAGUE_MODE", "league_mode"))
    days_ahead: int = Field(7, validation_alias=AliasChoices("DAYS_AHEAD", "days_ahead"))
    batch_limit: int = Field(10, validation_alias=AliasChoices("BATCH_LIMIT", "batch_limit"))
    write_delay_ms: int = Field(500, validation_alias=AliasChoices("WRITE_DELAY_MS", "write_delay_ms"))
    league_delay_ms: int = Field(800, validation_alias=AliasChoices("LEAGUE_DELAY_MS", "league_delay_ms"))
    grace_seconds: int = Field(7200, validation_alias=AliasChoices("GRACE_SECONDS", "grace_seconds"))

    # local state
    database_url: str = Field(
        "sqlite:///data/matchbridge.sqlite", validation_alias=AliasChoices("DATABASE_URL", "database_url")
    )
    settlement_cursor: bool = Field(
        False, validation_alias=AliasChoices("SETTLEMENT_CURSOR", "settlement_cursor")
    )
    publish_snapshot: bool = Field(
        False, validation_alias=AliasChoices("PUBLISH_SNAPSHOT", "publish_snapshot")
    )
    snapshot_key: str = Field(
        "matches:snapshot", validation_alias=AliasChoices("SNAPSHOT_KEY", "snapshot_key")
    )
    run_lock_ttl: int = Field(3 * 3600, validation_alias=AliasChoices("RUN_LOCK_TTL", "run_lock_ttl"))

    log_level: str = Field("INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))

    def missing_required(self) -> List[str]:
        """
        Names of required settings that are empty or not one of the accepted
        values. The provider key is only required for the keyed provider; the
        mirror is unauthenticated.
        """
        missing = []
        for name in ("rpc_url", "contract_address", "private_key"):
            if not getattr(self, name):
                missing.append(name.upper())
        if self.provider not in PROVIDERS:
            missing.append("PROVIDER")
        elif self.provider == "api_sports" and not self.api_football_key:
            missing.append("API_FOOTBALL_KEY")
        if self.league_mode not in LEAGUE_MODES:
            missing.append("LEAGUE_MODE")
        return missing

    def check_required(self) -> None:
        missing = self.missing_required()
        if missing:
            raise ConfigurationMissing(missing)


def league_ids_from_settings(settings: Settings) -> list[int]:
    """
    Parse comma-separated league IDs into a list of ints.
    """
    raw = settings.league_ids
    if not raw:
        return []
    ids = []
    for piece in raw.split(","):
        piece = piece.strip()
        if not piece:
            continue
        try:
            ids.append(int(piece))
        except ValueError:
            continue
    return ids


def get_settings() -> Settings:
    return Settings()


settings = Settings()
