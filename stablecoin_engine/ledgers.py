"""Collateral and debt ledgers, owned together by a LedgerStore."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class CollateralLedger:
    """Per-user, per-asset deposited quantities.

    Only non-zero entries are stored, so ``assets_of`` reflects exactly the
    assets a user currently has locked.
    """

    def __init__(self, balances: dict[str, dict[str, int]] | None = None) -> None:
        self._balances: dict[str, dict[str, int]] = {}
        self.load(balances or {})

    def load(self, balances: dict[str, dict[str, int]]) -> None:
        """Replace every balance with ``balances``."""
        self._balances.clear()
        for user, assets in balances.items():
            for asset, amount in assets.items():
                self._set(user, asset, int(amount))

    def _set(self, user: str, asset: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Collateral balance cannot go negative ({user}, {asset})")
        if amount == 0:
            user_assets = self._balances.get(user)
            if user_assets is not None:
                user_assets.pop(asset, None)
                if not user_assets:
                    del self._balances[user]
            return
        self._balances.setdefault(user, {})[asset] = amount

    def balance(self, user: str, asset: str) -> int:
        return self._balances.get(user, {}).get(asset, 0)

    def assets_of(self, user: str) -> dict[str, int]:
        """Copy of the user's non-zero balances."""
        return dict(self._balances.get(user, {}))

    def credit(self, user: str, asset: str, amount: int) -> None:
        self._set(user, asset, self.balance(user, asset) + amount)

    def debit(self, user: str, asset: str, amount: int) -> None:
        self._set(user, asset, self.balance(user, asset) - amount)

    def users(self) -> tuple[str, ...]:
        return tuple(self._balances)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {user: dict(assets) for user, assets in self._balances.items()}


class DebtLedger:
    """Per-user minted synthetic-asset balance."""

    def __init__(self, debts: dict[str, int] | None = None) -> None:
        self._debts: dict[str, int] = {}
        self.load(debts or {})

    def load(self, debts: dict[str, int]) -> None:
        """Replace every debt with ``debts``."""
        self._debts.clear()
        for user, amount in debts.items():
            self._set(user, int(amount))

    def _set(self, user: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Debt cannot go negative ({user})")
        if amount == 0:
            self._debts.pop(user, None)
        else:
            self._debts[user] = amount

    def balance(self, user: str) -> int:
        return self._debts.get(user, 0)

    def increase(self, user: str, amount: int) -> None:
        self._set(user, self.balance(user) + amount)

    def decrease(self, user: str, amount: int) -> None:
        self._set(user, self.balance(user) - amount)

    def users(self) -> tuple[str, ...]:
        return tuple(self._debts)

    def total(self) -> int:
        return sum(self._debts.values())

    def to_dict(self) -> dict[str, int]:
        return dict(self._debts)


@dataclass
class LedgerSnapshot:
    collateral: dict[str, dict[str, int]]
    debt: dict[str, int]


@dataclass
class LedgerStore:
    """The engine's persisted state: both ledgers, owned in one place."""

    collateral: CollateralLedger = field(default_factory=CollateralLedger)
    debt: DebtLedger = field(default_factory=DebtLedger)

    def users(self) -> tuple[str, ...]:
        """Every user with collateral or debt, in first-seen order."""
        return tuple(dict.fromkeys(self.collateral.users() + self.debt.users()))

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(collateral=self.collateral.to_dict(), debt=self.debt.to_dict())

    def restore(self, snapshot: LedgerSnapshot) -> None:
        self.collateral.load(snapshot.collateral)
        self.debt.load(snapshot.debt)

    def to_dict(self) -> dict[str, Any]:
        return {"collateral": self.collateral.to_dict(), "debt": self.debt.to_dict()}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> LedgerStore:
        return cls(
            collateral=CollateralLedger(raw.get("collateral") or {}),
            debt=DebtLedger(raw.get("debt") or {}),
        )
