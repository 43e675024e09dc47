"""In-memory fungible tokens backing the custodian and issuer collaborators."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from .errors import InsufficientBalanceError, UnsupportedCollateralError

logger = logging.getLogger(__name__)

# Holder name of the engine's own custody account
ENGINE_ACCOUNT = "engine"


class Token:
    """Balances of a single fungible token."""

    def __init__(self, symbol: str, balances: dict[str, int] | None = None) -> None:
        self.symbol = symbol
        self._balances: dict[str, int] = {
            holder: int(amount) for holder, amount in (balances or {}).items() if amount
        }

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    @property
    def total_supply(self) -> int:
        return sum(self._balances.values())

    def _debit(self, holder: str, amount: int) -> None:
        balance = self.balance_of(holder)
        if amount > balance:
            raise InsufficientBalanceError(
                f"{holder} holds {balance} {self.symbol}, needs {amount}"
            )
        if balance == amount:
            self._balances.pop(holder, None)
        else:
            self._balances[holder] = balance - amount

    def mint(self, to: str, amount: int) -> None:
        self._balances[to] = self.balance_of(to) + amount

    def burn(self, holder: str, amount: int) -> None:
        self._debit(holder, amount)

    def transfer(self, from_: str, to: str, amount: int) -> None:
        self._debit(from_, amount)
        self.mint(to, amount)

    def to_dict(self) -> dict[str, int]:
        return dict(self._balances)


class TokenCustodian:
    """AssetCustodian over in-memory collateral tokens.

    Transfers report failure with ``False`` instead of raising, like an ERC20
    ``transferFrom`` returning false.
    """

    def __init__(self, tokens: Iterable[Token], account: str = ENGINE_ACCOUNT) -> None:
        self.tokens = {t.symbol: t for t in tokens}
        self.account = account

    def token(self, asset: str) -> Token:
        try:
            return self.tokens[asset]
        except KeyError:
            raise UnsupportedCollateralError(f"No token for asset '{asset}'") from None

    def _move(self, asset: str, from_: str, to: str, amount: int) -> bool:
        try:
            self.token(asset).transfer(from_, to, amount)
        except (InsufficientBalanceError, UnsupportedCollateralError) as e:
            logger.warning("Transfer of %d %s failed: %s", amount, asset, e)
            return False
        return True

    async def transfer_in(self, asset: str, from_: str, amount: int) -> bool:
        return self._move(asset, from_, self.account, amount)

    async def transfer_out(self, asset: str, to: str, amount: int) -> bool:
        return self._move(asset, self.account, to, amount)

    def custody_balance(self, asset: str) -> int:
        return self.token(asset).balance_of(self.account)


class SyntheticToken:
    """SyntheticIssuer over an in-memory token; only the engine mints and burns."""

    def __init__(self, token: Token, account: str = ENGINE_ACCOUNT) -> None:
        self.token = token
        self.account = account

    async def mint(self, to: str, amount: int) -> bool:
        self.token.mint(to, amount)
        return True

    def _move(self, from_: str, to: str, amount: int) -> bool:
        try:
            self.token.transfer(from_, to, amount)
        except InsufficientBalanceError as e:
            logger.warning("Transfer of %d %s failed: %s", amount, self.token.symbol, e)
            return False
        return True

    async def transfer_in(self, from_: str, amount: int) -> bool:
        return self._move(from_, self.account, amount)

    async def transfer_out(self, to: str, amount: int) -> bool:
        return self._move(self.account, to, amount)

    async def burn(self, amount: int) -> None:
        self.token.burn(self.account, amount)

    def balance_of(self, holder: str) -> int:
        return self.token.balance_of(holder)
