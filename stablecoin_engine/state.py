"""YAML persistence of the ledgers and the in-memory token balances.

Layout::

    collateral: {user: {asset: quantity}}
    debt: {user: minted_amount}
    balances: {token: {holder: amount}}
"""
from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .ledgers import LedgerStore
from .tokens import Token

logger = logging.getLogger(__name__)


@dataclass
class EngineState:
    ledgers: LedgerStore = field(default_factory=LedgerStore)
    tokens: dict[str, Token] = field(default_factory=dict)

    def token(self, symbol: str) -> Token:
        if symbol not in self.tokens:
            self.tokens[symbol] = Token(symbol)
        return self.tokens[symbol]

    def to_dict(self) -> dict[str, Any]:
        raw = self.ledgers.to_dict()
        raw["balances"] = {symbol: t.to_dict() for symbol, t in self.tokens.items()}
        return raw


def load_state(path: str | Path, token_symbols: Iterable[str] = ()) -> EngineState:
    """Read state from ``path``; a missing file yields empty ledgers.

    Every symbol in ``token_symbols`` gets a Token even if the file has no
    balances for it.
    """
    path = Path(path)
    raw: dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        logger.debug("State loaded from %s", path)
    else:
        logger.info("No state file at %s, starting empty", path)

    state = EngineState(ledgers=LedgerStore.from_dict(raw))
    for symbol, balances in (raw.get("balances") or {}).items():
        state.tokens[symbol] = Token(symbol, balances)
    for symbol in token_symbols:
        state.token(symbol)
    return state


def save_state(path: str | Path, state: EngineState) -> None:
    """Write state atomically (temp file + rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            yaml.safe_dump(state.to_dict(), f, sort_keys=True)
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise
    logger.debug("State saved to %s", path)
