"""Position state transitions: deposit, mint, redeem, burn, liquidate.

Every operation runs under one lock, snapshots the ledgers on entry and
restores them on any failure. Ledger effects and the health-factor check
happen before any call into an external collaborator; those calls run last,
in order, and completed ones are compensated if a later one fails.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from functools import partial
from typing import Any

from ..config import AppConfig
from ..constants import (
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MIN_HEALTH_FACTOR,
)
from ..errors import (
    BurnExceedsDebtError,
    HealthFactorNotImprovedError,
    HealthFactorOkError,
    InsufficientCollateralError,
    InsufficientCollateralForLiquidationError,
    MintFailedError,
    ReentrancyError,
    TransferFailedError,
    ZeroAmountError,
)
from ..interfaces.custodian import AssetCustodian
from ..interfaces.issuer import SyntheticIssuer
from ..interfaces.price_feed import PriceFeed
from ..ledgers import LedgerStore
from ..models import AccountInformation
from ..oracles.adapter import PriceOracleAdapter
from ..registry import CollateralRegistry
from .health import HealthFactorEngine
from .valuation import ValuationService

logger = logging.getLogger(__name__)

# Ids of the managers with an operation in flight in the current context
_ACTIVE: ContextVar[frozenset[int]] = ContextVar("active_position_managers", default=frozenset())


@dataclass(frozen=True)
class _Interaction:
    name: str
    run: Callable[[], Awaitable[None]]
    undo: Callable[[], Awaitable[Any]] | None = None


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise ZeroAmountError(f"Amount must be greater than zero, got {amount}")


class PositionManager:
    """Orchestrates collateral and debt transitions for every user."""

    def __init__(
        self,
        registry: CollateralRegistry,
        issuer: SyntheticIssuer,
        custodian: AssetCustodian,
        store: LedgerStore | None = None,
        liquidation_threshold: int = LIQUIDATION_THRESHOLD,
        liquidation_precision: int = LIQUIDATION_PRECISION,
        liquidation_bonus: int = LIQUIDATION_BONUS,
        min_health_factor: int = MIN_HEALTH_FACTOR,
    ) -> None:
        self.registry = registry
        self.issuer = issuer
        self.custodian = custodian
        self.store = store if store is not None else LedgerStore()
        self.liquidation_precision = liquidation_precision
        self.liquidation_bonus = liquidation_bonus

        self.valuation = ValuationService(registry, self.store)
        self.health = HealthFactorEngine(
            self.valuation,
            liquidation_threshold=liquidation_threshold,
            liquidation_precision=liquidation_precision,
            min_health_factor=min_health_factor,
        )
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        feed: PriceFeed,
        issuer: SyntheticIssuer,
        custodian: AssetCustodian,
        store: LedgerStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> PositionManager:
        """Build a manager whose registry prices every collateral through ``feed``."""
        engine = config.engine
        assets = [c.asset for c in config.collateral]
        oracles = [
            PriceOracleAdapter(
                feed,
                c.feed,
                token_decimals=c.decimals,
                max_price_age=engine.max_price_age,
                clock=clock,
            )
            for c in config.collateral
        ]
        return cls(
            CollateralRegistry(assets, oracles),
            issuer,
            custodian,
            store=store,
            liquidation_threshold=engine.liquidation_threshold,
            liquidation_precision=engine.liquidation_precision,
            liquidation_bonus=engine.liquidation_bonus,
            min_health_factor=engine.min_health_factor,
        )

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        active = _ACTIVE.get()
        if id(self) in active:
            raise ReentrancyError("Position operation already in progress")

        token = _ACTIVE.set(active | {id(self)})
        try:
            async with self._lock:
                snapshot = self.store.snapshot()
                try:
                    yield
                except BaseException:
                    self.store.restore(snapshot)
                    raise
        finally:
            _ACTIVE.reset(token)

    @staticmethod
    async def _interact(steps: Sequence[_Interaction]) -> None:
        done: list[_Interaction] = []
        try:
            for step in steps:
                await step.run()
                done.append(step)
        except Exception:
            for step in reversed(done):
                if step.undo is None:
                    continue
                try:
                    await step.undo()
                except Exception:
                    logger.exception("Compensation for %s failed", step.name)
            raise

    async def _pull_collateral(self, asset: str, from_: str, amount: int) -> None:
        try:
            ok = await self.custodian.transfer_in(asset, from_, amount)
        except Exception as e:
            raise TransferFailedError(f"Transfer of {amount} {asset} from {from_} failed: {e}") from e
        if not ok:
            raise TransferFailedError(f"Transfer of {amount} {asset} from {from_} failed")

    async def _release_collateral(self, asset: str, to: str, amount: int) -> None:
        try:
            ok = await self.custodian.transfer_out(asset, to, amount)
        except Exception as e:
            raise TransferFailedError(f"Transfer of {amount} {asset} to {to} failed: {e}") from e
        if not ok:
            raise TransferFailedError(f"Transfer of {amount} {asset} to {to} failed")

    async def _issue(self, to: str, amount: int) -> None:
        try:
            ok = await self.issuer.mint(to, amount)
        except Exception as e:
            raise MintFailedError(f"Minting {amount} to {to} failed: {e}") from e
        if not ok:
            raise MintFailedError(f"Minting {amount} to {to} failed")

    async def _retire(self, from_: str, amount: int) -> None:
        """Pull synthetic tokens from ``from_`` into custody and destroy them.

        Runs as a single interaction: if the burn fails, the pulled tokens are
        handed back to ``from_`` before the error propagates.
        """
        try:
            ok = await self.issuer.transfer_in(from_, amount)
        except Exception as e:
            raise TransferFailedError(f"Transfer of {amount} synthetic from {from_} failed: {e}") from e
        if not ok:
            raise TransferFailedError(f"Transfer of {amount} synthetic from {from_} failed")

        try:
            await self.issuer.burn(amount)
        except Exception as e:
            try:
                returned = await self.issuer.transfer_out(from_, amount)
            except Exception:
                logger.exception("Returning %d synthetic to %s failed", amount, from_)
            else:
                if not returned:
                    logger.error("Returning %d synthetic to %s failed", amount, from_)
            raise TransferFailedError(f"Burning {amount} synthetic failed: {e}") from e

    # ------------------------------------------------------------------
    # Effects: validate and mutate the ledgers, return the interactions
    # ------------------------------------------------------------------

    def _deposit(self, user: str, asset: str, amount: int) -> list[_Interaction]:
        _require_positive(amount)
        self.registry.require(asset)
        self.store.collateral.credit(user, asset, amount)
        return [
            _Interaction(
                "collateral transfer in",
                partial(self._pull_collateral, asset, user, amount),
                partial(self._release_collateral, asset, user, amount),
            )
        ]

    async def _mint(self, user: str, amount: int) -> list[_Interaction]:
        _require_positive(amount)
        self.store.debt.increase(user, amount)
        await self.health.assert_safe(user)
        return [_Interaction("synthetic mint", partial(self._issue, user, amount))]

    def _debit_collateral(self, user: str, asset: str, amount: int) -> None:
        _require_positive(amount)
        self.registry.require(asset)
        deposited = self.store.collateral.balance(user, asset)
        if amount > deposited:
            raise InsufficientCollateralError(
                f"{user} has {deposited} {asset} deposited, cannot redeem {amount}"
            )
        self.store.collateral.debit(user, asset, amount)

    def _burn(self, user: str, amount: int, payer: str) -> list[_Interaction]:
        _require_positive(amount)
        debt = self.store.debt.balance(user)
        if amount > debt:
            raise BurnExceedsDebtError(f"{user} owes {debt}, cannot burn {amount}")
        self.store.debt.decrease(user, amount)
        return [
            _Interaction(
                "synthetic burn",
                partial(self._retire, payer, amount),
                partial(self.issuer.mint, payer, amount),
            )
        ]

    async def _assert_safe_if_indebted(self, user: str) -> None:
        if self.store.debt.balance(user) > 0:
            await self.health.assert_safe(user)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def deposit(self, user: str, asset: str, amount: int) -> None:
        """Lock ``amount`` of ``asset`` as collateral for ``user``."""
        async with self._transaction():
            await self._interact(self._deposit(user, asset, amount))
        logger.info("CollateralDeposited user=%s asset=%s amount=%d", user, asset, amount)

    async def mint(self, user: str, amount: int) -> None:
        """Mint ``amount`` of the synthetic asset against existing collateral."""
        async with self._transaction():
            await self._interact(await self._mint(user, amount))
        logger.info("SyntheticMinted user=%s amount=%d", user, amount)

    async def deposit_and_mint(
        self, user: str, asset: str, collateral_amount: int, mint_amount: int
    ) -> None:
        async with self._transaction():
            steps = self._deposit(user, asset, collateral_amount)
            steps += await self._mint(user, mint_amount)
            await self._interact(steps)
        logger.info(
            "CollateralDeposited user=%s asset=%s amount=%d", user, asset, collateral_amount
        )
        logger.info("SyntheticMinted user=%s amount=%d", user, mint_amount)

    async def redeem(self, user: str, asset: str, amount: int) -> None:
        """Withdraw collateral; rejected if it would break the health factor."""
        async with self._transaction():
            self._debit_collateral(user, asset, amount)
            await self._assert_safe_if_indebted(user)
            await self._interact([
                _Interaction(
                    "collateral transfer out",
                    partial(self._release_collateral, asset, user, amount),
                )
            ])
        logger.info("CollateralRedeemed from=%s to=%s asset=%s amount=%d", user, user, asset, amount)

    async def burn(self, user: str, amount: int) -> None:
        """Repay ``amount`` of debt with the user's own synthetic tokens."""
        async with self._transaction():
            await self._interact(self._burn(user, amount, payer=user))
        logger.info("SyntheticBurned user=%s amount=%d", user, amount)

    async def redeem_for_collateral(
        self, user: str, asset: str, collateral_amount: int, burn_amount: int
    ) -> None:
        """Burn debt and withdraw collateral in one step."""
        async with self._transaction():
            steps = self._burn(user, burn_amount, payer=user)
            self._debit_collateral(user, asset, collateral_amount)
            await self._assert_safe_if_indebted(user)
            steps.append(
                _Interaction(
                    "collateral transfer out",
                    partial(self._release_collateral, asset, user, collateral_amount),
                )
            )
            await self._interact(steps)
        logger.info("SyntheticBurned user=%s amount=%d", user, burn_amount)
        logger.info(
            "CollateralRedeemed from=%s to=%s asset=%s amount=%d",
            user, user, asset, collateral_amount,
        )

    async def liquidate(
        self, liquidator: str, user: str, asset: str, debt_to_cover: int
    ) -> int:
        """Repay part of an unsafe position's debt in exchange for its collateral.

        The liquidator burns ``debt_to_cover`` of their own synthetic tokens and
        receives the equivalent amount of ``asset`` plus the liquidation bonus.
        Returns the collateral amount paid out.
        """
        async with self._transaction():
            _require_positive(debt_to_cover)
            self.registry.require(asset)

            if not await self.health.is_liquidatable(user):
                raise HealthFactorOkError(f"Position of {user} is healthy")

            debt = self.store.debt.balance(user)
            if debt_to_cover > debt:
                raise BurnExceedsDebtError(f"{user} owes {debt}, cannot cover {debt_to_cover}")

            starting_hf = await self.health.raw_health_factor(user)

            base = await self.valuation.token_amount_from_usd(asset, debt_to_cover)
            bonus = base * self.liquidation_bonus // self.liquidation_precision
            total = base + bonus

            deposited = self.store.collateral.balance(user, asset)
            if total > deposited:
                raise InsufficientCollateralForLiquidationError(
                    f"{user} has {deposited} {asset}, liquidation needs {total}"
                )

            self.store.collateral.debit(user, asset, total)
            steps = self._burn(user, debt_to_cover, payer=liquidator)

            ending_hf = await self.health.raw_health_factor(user)
            if ending_hf < starting_hf:
                raise HealthFactorNotImprovedError(
                    f"Health factor of {user} would drop from {starting_hf} to {ending_hf}"
                )

            steps.append(
                _Interaction(
                    "collateral transfer out",
                    partial(self._release_collateral, asset, liquidator, total),
                )
            )
            await self._interact(steps)

        logger.info(
            "PositionLiquidated user=%s liquidator=%s asset=%s debt_covered=%d collateral=%d bonus=%d",
            user, liquidator, asset, debt_to_cover, total, bonus,
        )
        return total

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def collateral_assets(self) -> tuple[str, ...]:
        return self.registry.assets

    def collateral_balance(self, user: str, asset: str) -> int:
        return self.store.collateral.balance(user, asset)

    def debt_of(self, user: str) -> int:
        return self.store.debt.balance(user)

    async def health_factor(self, user: str) -> int:
        return await self.health.health_factor(user)

    async def account_information(self, user: str) -> AccountInformation:
        return await self.valuation.account_information(user)
