"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from pathlib import Path

import pytest

from stablecoin_engine.config import (
    AppConfig,
    CollateralConfig,
    EngineConfig,
    _interpolate_env,
    load_config,
    parse_int,
)
from stablecoin_engine.constants import MIN_HEALTH_FACTOR


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_dict_and_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FEED", "eth-usd")
        result = _interpolate_env({"collateral": [{"feed": "${FEED}"}], "plain": 1})
        assert result == {"collateral": [{"feed": "eth-usd"}], "plain": 1}


class TestParseInt:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (42, 42),
            ("1_000", 1000),
            ("2000e8", 2000 * 10**8),
            ("1.5e18", 15 * 10**17),
            ("1e18", 10**18),
        ],
    )
    def test_accepted_forms(self, raw: object, expected: int) -> None:
        assert parse_int(raw) == expected

    @pytest.mark.parametrize("raw", ["1.5", "abc", True])
    def test_rejects_non_integers(self, raw: object) -> None:
        with pytest.raises(ValueError):
            parse_int(raw)


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert [c.asset for c in cfg.collateral] == ["WETH", "WBTC"]
        assert cfg.collateral[1].decimals == 8
        assert cfg.engine.min_health_factor == MIN_HEALTH_FACTOR
        assert cfg.engine.warning_health_factor == 15 * 10**17
        assert cfg.engine.max_price_age == 0
        assert cfg.price_oracle.provider == "static"
        assert cfg.price_oracle.static["eth-usd"].price == 2000 * 10**8
        assert cfg.synthetic.symbol == "DSC"

    def test_defaults_for_missing_engine_section(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            "collateral:\n  - {asset: WETH, feed: '0xabc'}\n"
        )
        cfg = load_config(cfg_file)
        assert cfg.engine == EngineConfig()
        assert cfg.price_oracle.provider == "pyth"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_FEED", "0xFEED")
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            "collateral:\n  - asset: WETH\n    feed: \"${TEST_FEED}\"\n"
        )
        cfg = load_config(cfg_file)
        assert cfg.collateral[0].feed == "0xFEED"

    def test_empty_provider_falls_back_to_pyth(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("UNSET_PROVIDER_XYZ", raising=False)
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            "collateral:\n  - {asset: WETH, feed: f}\n"
            "price_oracle:\n  provider: ${UNSET_PROVIDER_XYZ}\n"
        )
        assert load_config(cfg_file).price_oracle.provider == "pyth"


class TestValidation:
    def _write(self, tmp_path: Path, body: str) -> Path:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(body)
        return cfg_file

    def test_no_collateral_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="At least one collateral"):
            load_config(self._write(tmp_path, "collateral: []\n"))

    def test_duplicate_asset_raises(self, tmp_path: Path) -> None:
        body = "collateral:\n  - {asset: WETH, feed: a}\n  - {asset: WETH, feed: b}\n"
        with pytest.raises(ValueError, match="configured twice"):
            load_config(self._write(tmp_path, body))

    def test_missing_feed_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="no price feed"):
            load_config(self._write(tmp_path, "collateral:\n  - {asset: WETH}\n"))

    def test_unknown_provider_raises(self, tmp_path: Path) -> None:
        body = "collateral:\n  - {asset: WETH, feed: a}\nprice_oracle:\n  provider: chainlink\n"
        with pytest.raises(ValueError, match="Unknown price oracle provider"):
            load_config(self._write(tmp_path, body))

    def test_static_provider_needs_every_feed(self, tmp_path: Path) -> None:
        body = (
            "collateral:\n  - {asset: WETH, feed: eth-usd}\n"
            "price_oracle:\n  provider: static\n  static: {}\n"
        )
        with pytest.raises(ValueError, match="unknown static feed"):
            load_config(self._write(tmp_path, body))

    def test_synthetic_symbol_clash_raises(self, tmp_path: Path) -> None:
        body = "collateral:\n  - {asset: DSC, feed: a}\n"
        with pytest.raises(ValueError, match="clashes"):
            load_config(self._write(tmp_path, body))

    def test_threshold_above_precision_raises(self, tmp_path: Path) -> None:
        body = (
            "engine:\n  liquidation_threshold: 150\n"
            "collateral:\n  - {asset: WETH, feed: a}\n"
        )
        with pytest.raises(ValueError, match="liquidation_threshold"):
            load_config(self._write(tmp_path, body))


class TestFrozenConfigs:
    def test_engine_config_immutable(self) -> None:
        e = EngineConfig()
        with pytest.raises(AttributeError):
            e.liquidation_bonus = 50  # type: ignore[misc]

    def test_collateral_config_immutable(self) -> None:
        c = CollateralConfig(asset="WETH", feed="eth-usd")
        with pytest.raises(AttributeError):
            c.decimals = 6  # type: ignore[misc]
