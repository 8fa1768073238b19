from functools import lru_cache
from typing import Any

from pydantic import AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ORACLE_CHAIN_ENDPOINTS: dict[str, str] = {
    "polygon": (
        "https://api.goldsky.com/api/public/project_clus2fndawbcc01w31192938i/"
        "subgraphs/polygon-managed-optimistic-oracle-v2/1.0.4/gn"
    ),
    "amoy": (
        "https://api.goldsky.com/api/public/project_clus2fndawbcc01w31192938i/"
        "subgraphs/amoy-managed-optimistic-oracle-v2/1.1.0/gn"
    ),
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    polymarket_base_url: AnyUrl = Field(
        default="https://gamma-api.polymarket.com",
        description="Base URL for the Polymarket Gamma API",
    )
    polymarket_events_path: str = Field(
        default="/events",
        description="Relative path for the events endpoint",
    )
    related_events_limit: int = Field(
        default=100,
        description="Maximum number of child events requested for a parent event",
        ge=1,
    )
    oracle_chain_endpoints: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_ORACLE_CHAIN_ENDPOINTS),
        description="Optimistic oracle subgraph endpoints keyed by chain name",
    )
    oracle_default_chain: str = Field(
        default="polygon",
        description="Chain used when a lookup does not name one or names an unknown one",
    )
    oracle_batch_size: int = Field(
        default=8,
        description="Number of markets packed into one subgraph query",
        ge=1,
    )
    transport_fallbacks: list[str] | str = Field(
        default_factory=list,
        description=(
            "Ordered URL templates tried when a direct request fails; each must contain "
            "'{url}', which is replaced by the percent-encoded original URL."
        ),
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout applied to every outbound HTTP request",
        gt=0,
    )

    @field_validator("transport_fallbacks", mode="after")
    @classmethod
    def _parse_transport_fallbacks(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            candidates = [part.strip() for part in value.split(",")]
        elif isinstance(value, (list, tuple)):
            candidates = [str(item).strip() for item in value]
        else:
            raise ValueError(
                "TRANSPORT_FALLBACKS must be provided as a list or comma-separated string"
            )
        templates = [item for item in candidates if item]
        for template in templates:
            if "{url}" not in template:
                raise ValueError(
                    f"Transport fallback '{template}' must contain a '{{url}}' placeholder"
                )
        return templates

    @field_validator("oracle_chain_endpoints", mode="after")
    @classmethod
    def _normalize_chain_keys(cls, value: dict[str, str]) -> dict[str, str]:
        if not value:
            raise ValueError("ORACLE_CHAIN_ENDPOINTS must define at least one chain")
        return {key.strip().lower(): url for key, url in value.items()}

    @model_validator(mode="after")
    def _require_known_default_chain(self) -> "Settings":
        self.oracle_default_chain = self.oracle_default_chain.strip().lower()
        if self.oracle_default_chain not in self.oracle_chain_endpoints:
            raise ValueError(
                "ORACLE_DEFAULT_CHAIN must be one of: "
                + ", ".join(sorted(self.oracle_chain_endpoints))
            )
        return self

    @property
    def events_url(self) -> str:
        base = str(self.polymarket_base_url).rstrip("/")
        path = "/" + self.polymarket_events_path.strip("/")
        return base + path


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
