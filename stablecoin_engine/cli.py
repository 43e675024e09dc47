"""Command-line interface for the stablecoin engine."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import AppConfig, load_config, parse_int
from .errors import EngineError
from .interfaces.price_feed import PriceFeed
from .logging_setup import configure_logging
from .oracles import PythPriceFeed, StaticPriceFeed
from .services import LiquidationScanner, PositionManager
from .services.scanner import format_health_factor, format_usd
from .state import EngineState, load_state, save_state
from .tokens import SyntheticToken, TokenCustodian

logger = logging.getLogger(__name__)

# Commands that change ledgers or balances and need the state saved
_MUTATING = {
    "fund",
    "deposit",
    "mint",
    "deposit-and-mint",
    "redeem",
    "burn",
    "redeem-for-collateral",
    "liquidate",
}


def _amount(value: str) -> int:
    try:
        return parse_int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="stablecoin-engine",
        description="Over-collateralized USD stablecoin engine",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--state",
        default=None,
        help="Path to the state file (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    fund = sub.add_parser("fund", help="Credit a wallet with test tokens")
    fund.add_argument("holder")
    fund.add_argument("token")
    fund.add_argument("amount", type=_amount)

    deposit = sub.add_parser("deposit", help="Deposit collateral")
    deposit.add_argument("user")
    deposit.add_argument("asset")
    deposit.add_argument("amount", type=_amount)

    mint = sub.add_parser("mint", help="Mint the synthetic asset")
    mint.add_argument("user")
    mint.add_argument("amount", type=_amount)

    dam = sub.add_parser("deposit-and-mint", help="Deposit collateral and mint in one step")
    dam.add_argument("user")
    dam.add_argument("asset")
    dam.add_argument("collateral_amount", type=_amount)
    dam.add_argument("mint_amount", type=_amount)

    redeem = sub.add_parser("redeem", help="Withdraw collateral")
    redeem.add_argument("user")
    redeem.add_argument("asset")
    redeem.add_argument("amount", type=_amount)

    burn = sub.add_parser("burn", help="Burn the synthetic asset to repay debt")
    burn.add_argument("user")
    burn.add_argument("amount", type=_amount)

    rfc = sub.add_parser(
        "redeem-for-collateral", help="Burn debt and withdraw collateral in one step"
    )
    rfc.add_argument("user")
    rfc.add_argument("asset")
    rfc.add_argument("collateral_amount", type=_amount)
    rfc.add_argument("burn_amount", type=_amount)

    liquidate = sub.add_parser("liquidate", help="Liquidate an unsafe position")
    liquidate.add_argument("liquidator")
    liquidate.add_argument("user")
    liquidate.add_argument("asset")
    liquidate.add_argument("debt_to_cover", type=_amount)

    health = sub.add_parser("health", help="Show a user's health factor")
    health.add_argument("user")

    info = sub.add_parser("info", help="Show a user's collateral, debt and balances")
    info.add_argument("user")

    sub.add_parser("scan", help="Report every position, worst first")

    return parser


def build_feed(config: AppConfig) -> PriceFeed:
    if config.price_oracle.provider == "static":
        return StaticPriceFeed(config.price_oracle.static)
    return PythPriceFeed(config.price_oracle.pyth)


def build_manager(config: AppConfig, state: EngineState, feed: PriceFeed) -> PositionManager:
    custodian = TokenCustodian(state.token(c.asset) for c in config.collateral)
    issuer = SyntheticToken(state.token(config.synthetic.symbol))
    return PositionManager.from_config(config, feed, issuer, custodian, store=state.ledgers)


async def _show_info(manager: PositionManager, state: EngineState, user: str) -> None:
    info = await manager.account_information(user)
    hf = manager.health.ratio(info.total_debt, info.collateral_value_usd)
    print(f"User: {user}")
    print(f"  Collateral value: {format_usd(info.collateral_value_usd)}")
    print(f"  Debt:             {format_usd(info.total_debt)}")
    print(f"  Health factor:    {format_health_factor(hf)}")
    print("  Deposited:")
    for asset in manager.collateral_assets:
        print(f"    {asset}: {manager.collateral_balance(user, asset)}")
    print("  Wallet:")
    for symbol, token in sorted(state.tokens.items()):
        print(f"    {symbol}: {token.balance_of(user)}")


async def _dispatch(
    args: argparse.Namespace,
    config: AppConfig,
    state: EngineState,
    manager: PositionManager,
) -> None:
    """Execute the selected command."""
    if args.command == "fund":
        known = {c.asset for c in config.collateral} | {config.synthetic.symbol}
        if args.token not in known:
            raise ValueError(f"Unknown token '{args.token}'")
        state.token(args.token).mint(args.holder, args.amount)
        logger.info("Funded %s with %d %s", args.holder, args.amount, args.token)
    elif args.command == "deposit":
        await manager.deposit(args.user, args.asset, args.amount)
    elif args.command == "mint":
        await manager.mint(args.user, args.amount)
    elif args.command == "deposit-and-mint":
        await manager.deposit_and_mint(
            args.user, args.asset, args.collateral_amount, args.mint_amount
        )
    elif args.command == "redeem":
        await manager.redeem(args.user, args.asset, args.amount)
    elif args.command == "burn":
        await manager.burn(args.user, args.amount)
    elif args.command == "redeem-for-collateral":
        await manager.redeem_for_collateral(
            args.user, args.asset, args.collateral_amount, args.burn_amount
        )
    elif args.command == "liquidate":
        paid = await manager.liquidate(
            args.liquidator, args.user, args.asset, args.debt_to_cover
        )
        print(f"Liquidator received {paid} {args.asset}")
    elif args.command == "health":
        print(format_health_factor(await manager.health_factor(args.user)))
    elif args.command == "info":
        await _show_info(manager, state, args.user)
    elif args.command == "scan":
        scanner = LiquidationScanner(manager, config.engine.warning_health_factor)
        for report in await scanner.scan():
            print(
                f"{report.user}: {report.status} · HF {format_health_factor(report.health_factor)}"
                f" · collateral {format_usd(report.collateral_value_usd)}"
                f" · debt {format_usd(report.total_debt)}"
            )


async def _run(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    config = load_config(args.config)
    state_path = args.state or config.state.path

    symbols = [c.asset for c in config.collateral] + [config.synthetic.symbol]
    state = load_state(state_path, symbols)
    manager = build_manager(config, state, build_feed(config))

    try:
        await _dispatch(args, config, state, manager)
    except (EngineError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1

    if args.command in _MUTATING:
        save_state(state_path, state)
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
