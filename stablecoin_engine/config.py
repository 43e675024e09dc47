"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import (
    DEFAULT_MAX_PRICE_AGE,
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MIN_HEALTH_FACTOR,
    PRECISION,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    liquidation_threshold: int = LIQUIDATION_THRESHOLD
    liquidation_precision: int = LIQUIDATION_PRECISION
    liquidation_bonus: int = LIQUIDATION_BONUS
    min_health_factor: int = MIN_HEALTH_FACTOR
    warning_health_factor: int = PRECISION * 3 // 2
    max_price_age: int = DEFAULT_MAX_PRICE_AGE


@dataclass(frozen=True)
class CollateralConfig:
    asset: str = ""
    feed: str = ""
    decimals: int = 18


@dataclass(frozen=True)
class SyntheticConfig:
    symbol: str = "DSC"
    decimals: int = 18


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    timeout: int = 30


@dataclass(frozen=True)
class StaticPriceConfig:
    price: int = 0
    decimals: int = 8


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)
    static: dict[str, StaticPriceConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class StateConfig:
    path: str = "state.yaml"


@dataclass(frozen=True)
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    collateral: tuple[CollateralConfig, ...] = ()
    synthetic: SyntheticConfig = field(default_factory=SyntheticConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    state: StateConfig = field(default_factory=StateConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def parse_int(value: Any) -> int:
    """Parse an integer that may be written as ``2000e8``, ``1.5e18`` or ``1_000``."""
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    try:
        parsed = Decimal(str(value).strip().replace("_", ""))
    except InvalidOperation as e:
        raise ValueError(f"Expected an integer, got {value!r}") from e
    if parsed != parsed.to_integral_value():
        raise ValueError(f"Expected an integer, got {value!r}")
    return int(parsed)


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_engine(raw: dict[str, Any]) -> EngineConfig:
    defaults = EngineConfig()
    return EngineConfig(
        liquidation_threshold=parse_int(
            raw.get("liquidation_threshold", defaults.liquidation_threshold)
        ),
        liquidation_precision=parse_int(
            raw.get("liquidation_precision", defaults.liquidation_precision)
        ),
        liquidation_bonus=parse_int(raw.get("liquidation_bonus", defaults.liquidation_bonus)),
        min_health_factor=parse_int(raw.get("min_health_factor", defaults.min_health_factor)),
        warning_health_factor=parse_int(
            raw.get("warning_health_factor", defaults.warning_health_factor)
        ),
        max_price_age=parse_int(raw.get("max_price_age", defaults.max_price_age)),
    )


def _build_collateral(raw: list[dict[str, Any]]) -> tuple[CollateralConfig, ...]:
    collateral: list[CollateralConfig] = []
    for c in raw:
        collateral.append(
            CollateralConfig(
                asset=str(c.get("asset", "")),
                feed=str(c.get("feed", "")),
                decimals=parse_int(c.get("decimals", 18)),
            )
        )
    return tuple(collateral)


def _build_synthetic(raw: dict[str, Any]) -> SyntheticConfig:
    return SyntheticConfig(
        symbol=raw.get("symbol", "DSC"),
        decimals=parse_int(raw.get("decimals", 18)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    static_raw = raw.get("static", {})
    return PriceOracleConfig(
        provider=raw.get("provider") or "pyth",
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            timeout=parse_int(pyth_raw.get("timeout", PythConfig.timeout)),
        ),
        static={
            str(feed): StaticPriceConfig(
                price=parse_int(entry.get("price", 0)),
                decimals=parse_int(entry.get("decimals", 8)),
            )
            for feed, entry in static_raw.items()
        },
    )


def _build_state(raw: dict[str, Any]) -> StateConfig:
    return StateConfig(path=raw.get("path", "state.yaml"))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        engine=_build_engine(raw.get("engine", {})),
        collateral=_build_collateral(raw.get("collateral", [])),
        synthetic=_build_synthetic(raw.get("synthetic", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
        state=_build_state(raw.get("state", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.collateral:
        raise ValueError("At least one collateral asset must be configured")

    seen: set[str] = set()
    for c in cfg.collateral:
        if not c.asset:
            raise ValueError("Collateral entry has no asset identifier")
        if c.asset in seen:
            raise ValueError(f"Collateral '{c.asset}' is configured twice")
        seen.add(c.asset)
        if not c.feed:
            raise ValueError(f"Collateral '{c.asset}' has no price feed")
        if c.decimals < 0:
            raise ValueError(f"Collateral '{c.asset}' has negative decimals")

    if cfg.synthetic.symbol in seen:
        raise ValueError(
            f"Synthetic symbol '{cfg.synthetic.symbol}' clashes with a collateral asset"
        )

    if cfg.price_oracle.provider not in ("pyth", "static"):
        raise ValueError(f"Unknown price oracle provider '{cfg.price_oracle.provider}'")

    if cfg.price_oracle.provider == "static":
        for c in cfg.collateral:
            if c.feed not in cfg.price_oracle.static:
                raise ValueError(
                    f"Collateral '{c.asset}' references unknown static feed '{c.feed}'"
                )

    engine = cfg.engine
    if not 0 < engine.liquidation_threshold <= engine.liquidation_precision:
        raise ValueError("liquidation_threshold must be within (0, liquidation_precision]")
    if engine.liquidation_bonus < 0:
        raise ValueError("liquidation_bonus must not be negative")
    if engine.max_price_age < 0:
        raise ValueError("max_price_age must not be negative")
