"""Unit tests for CLI argument parsing."""
from __future__ import annotations

import pytest

from stablecoin_engine.cli import build_parser


class TestBuildParser:
    def test_deposit_command(self) -> None:
        args = build_parser().parse_args(["deposit", "alice", "WETH", "1e18"])
        assert args.command == "deposit"
        assert args.user == "alice"
        assert args.asset == "WETH"
        assert args.amount == 10**18

    def test_deposit_and_mint_command(self) -> None:
        args = build_parser().parse_args(
            ["deposit-and-mint", "alice", "WETH", "10e18", "100e18"]
        )
        assert args.collateral_amount == 10 * 10**18
        assert args.mint_amount == 100 * 10**18

    def test_liquidate_command(self) -> None:
        args = build_parser().parse_args(["liquidate", "bob", "alice", "WETH", "100"])
        assert args.liquidator == "bob"
        assert args.user == "alice"
        assert args.debt_to_cover == 100

    def test_scan_command(self) -> None:
        args = build_parser().parse_args(["scan"])
        assert args.command == "scan"

    def test_rejects_fractional_amount(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["mint", "alice", "0.5"])

    def test_config_and_state_flags(self) -> None:
        args = build_parser().parse_args(
            ["--config", "/tmp/c.yaml", "--state", "/tmp/s.yaml", "health", "alice"]
        )
        assert args.config == "/tmp/c.yaml"
        assert args.state == "/tmp/s.yaml"

    def test_log_level_flag(self) -> None:
        args = build_parser().parse_args(["--log-level", "DEBUG", "scan"])
        assert args.log_level == "DEBUG"

    def test_no_command(self) -> None:
        args = build_parser().parse_args([])
        assert args.command is None
