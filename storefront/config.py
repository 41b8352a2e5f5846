"""
Settings — environment-driven configuration.

    settings = Settings.from_env()          # reads STOREFRONT_* (and .env)
    settings = Settings().with_database("sqlite+aiosqlite:///shop.db")
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from decimal import Decimal

from dotenv import load_dotenv

from storefront.pricing import PricingRates

ENV_PREFIX = "STOREFRONT_"


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///storefront.db"

    standard_shipping: Decimal = Decimal("15.00")
    express_shipping: Decimal = Decimal("25.00")
    free_shipping_threshold: Decimal = Decimal("100.00")
    tax_rate: Decimal = Decimal("0.08")

    gateway_base_url: str = "https://api.paystack.co"
    gateway_secret_key: str = ""
    gateway_timeout_seconds: float = 10.0

    # Return deducted stock when an unpaid order is cancelled
    restock_on_failure: bool = True

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> Settings:
        """Build settings from STOREFRONT_* variables, falling back to defaults."""
        if dotenv:
            load_dotenv()

        defaults = cls()
        return cls(
            database_url=_env("DATABASE_URL", defaults.database_url),
            standard_shipping=Decimal(
                _env("STANDARD_SHIPPING", str(defaults.standard_shipping))
            ),
            express_shipping=Decimal(
                _env("EXPRESS_SHIPPING", str(defaults.express_shipping))
            ),
            free_shipping_threshold=Decimal(
                _env("FREE_SHIPPING_THRESHOLD", str(defaults.free_shipping_threshold))
            ),
            tax_rate=Decimal(_env("TAX_RATE", str(defaults.tax_rate))),
            gateway_base_url=_env("GATEWAY_BASE_URL", defaults.gateway_base_url),
            gateway_secret_key=_env("GATEWAY_SECRET_KEY", defaults.gateway_secret_key),
            gateway_timeout_seconds=float(
                _env("GATEWAY_TIMEOUT_SECONDS", str(defaults.gateway_timeout_seconds))
            ),
            restock_on_failure=_env_bool("RESTOCK_ON_FAILURE", defaults.restock_on_failure),
            log_level=_env("LOG_LEVEL", defaults.log_level),
        )

    def with_database(self, url: str) -> Settings:
        return replace(self, database_url=url)

    def with_gateway(
        self,
        *,
        base_url: str | None = None,
        secret_key: str | None = None,
        timeout_seconds: float | None = None,
    ) -> Settings:
        return replace(
            self,
            gateway_base_url=base_url or self.gateway_base_url,
            gateway_secret_key=secret_key if secret_key is not None else self.gateway_secret_key,
            gateway_timeout_seconds=timeout_seconds or self.gateway_timeout_seconds,
        )

    def pricing_rates(self) -> PricingRates:
        return PricingRates(
            standard_shipping=self.standard_shipping,
            express_shipping=self.express_shipping,
            free_shipping_threshold=self.free_shipping_threshold,
            tax_rate=self.tax_rate,
        )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _env(name: str, default: str) -> str:
    return os.getenv(ENV_PREFIX + name, default)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


__all__ = ("Settings", "configure_logging")
