"""
Betting-ledger contract access.

The contract exposes ``nextMatchId``, ``matches(id)``, ``createMatch`` and
``settleMatchOffChain``. Writes are signed locally and sent as raw
transactions; a write only counts once its receipt reports success.
"""

from __future__ import annotations

import abc
import json
import logging
from importlib import resources
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from .domain import OnChainMatch
from .errors import LedgerError, WriteRejected

log = logging.getLogger(__name__)

BUNDLED_ABI = "FootballBettingHybrid.json"


class Ledger(abc.ABC):
    @abc.abstractmethod
    def next_match_id(self) -> int:
        ...

    @abc.abstractmethod
    def get_match(self, match_id: int) -> OnChainMatch:
        ...

    @abc.abstractmethod
    def create_match(self, home: str, away: str, match_time: int, external_id: str) -> str:
        """Return the transaction hash; raise WriteRejected on failure."""

    @abc.abstractmethod
    def settle_match(self, match_id: int, home_score: int, away_score: int) -> str:
        """Return the transaction hash; raise WriteRejected on failure."""


def load_abi(path: Optional[str] = None) -> List[Dict]:
    """
    Load an ABI from a Hardhat/Foundry artifact (``{"abi": [...]}``) or a
    bare ABI list. Without a path the bundled ABI is used.
    """
    if path:
        raw = Path(path).read_text(encoding="utf-8")
    else:
        raw = resources.files("matchbridge.abi").joinpath(BUNDLED_ABI).read_text(encoding="utf-8")
    data = json.loads(raw)
    if isinstance(data, dict):
        data = data.get("abi")
    if not isinstance(data, list):
        raise ValueError("ABI file must contain a list or an object with an 'abi' list")
    return data


def normalize_private_key(key: str) -> str:
    key = key.strip()
    return key if key.startswith("0x") else "0x" + key


def decode_match(raw: Sequence) -> OnChainMatch:
    """
    ``matches(id)`` returns
    (id, home, away, matchTime, outcome, exists, deleted, externalMatchId).
    """
    if len(raw) < 8:
        raise LedgerError(f"matches() returned {len(raw)} fields, expected 8")
    match_id, home, away, match_time, outcome, exists, deleted, external_id = raw[:8]
    return OnChainMatch(
        id=int(match_id),
        home=str(home),
        away=str(away),
        match_time=int(match_time),
        outcome=int(outcome),
        exists=bool(exists),
        deleted=bool(deleted),
        external_match_id=str(external_id),
    )


class Web3Ledger(Ledger):
    def __init__(
        self,
        w3: Web3,
        contract_address: str,
        abi: List[Dict],
        private_key: str,
        chain_id: int,
        receipt_timeout: int = 120,
    ) -> None:
        self.w3 = w3
        self.contract = w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi)
        self.account = Account.from_key(normalize_private_key(private_key))
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout

    @classmethod
    def from_settings(cls, settings) -> "Web3Ledger":
        w3 = Web3(Web3.HTTPProvider(settings.rpc_url))
        return cls(
            w3,
            contract_address=settings.contract_address,
            abi=load_abi(settings.contract_abi_path),
            private_key=settings.private_key,
            chain_id=settings.chain_id,
            receipt_timeout=settings.tx_receipt_timeout,
        )

    def next_match_id(self) -> int:
        try:
            return int(self.contract.functions.nextMatchId().call())
        except (Web3Exception, ValueError, OSError) as exc:
            raise LedgerError(f"nextMatchId() failed: {exc}") from exc

    def get_match(self, match_id: int) -> OnChainMatch:
        try:
            raw = self.contract.functions.matches(match_id).call()
        except (Web3Exception, ValueError, OSError) as exc:
            raise LedgerError(f"matches({match_id}) failed: {exc}") from exc
        return decode_match(raw)

    def _transact(self, label: str, fn) -> str:
        try:
            tx = fn.build_transaction(
                {
                    "from": self.account.address,
                    "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
                    "chainId": self.chain_id,
                }
            )
            signed = self.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as exc:
            raise WriteRejected(f"{label} reverted: {exc}") from exc
        except (Web3Exception, ValueError, OSError) as exc:
            raise WriteRejected(f"{label} failed: {exc}") from exc

        hex_hash = Web3.to_hex(tx_hash)
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except TimeExhausted as exc:
            raise WriteRejected(f"{label} not mined within {self.receipt_timeout}s (tx={hex_hash})") from exc
        except (Web3Exception, ValueError, OSError) as exc:
            raise WriteRejected(f"{label} receipt lookup failed (tx={hex_hash}): {exc}") from exc
        if receipt.get("status") != 1:
            raise WriteRejected(f"{label} mined with status {receipt.get('status')} (tx={hex_hash})")
        return hex_hash

    def create_match(self, home: str, away: str, match_time: int, external_id: str) -> str:
        fn = self.contract.functions.createMatch(home, away, int(match_time), str(external_id))
        return self._transact(f"createMatch({external_id})", fn)

    def settle_match(self, match_id: int, home_score: int, away_score: int) -> str:
        fn = self.contract.functions.settleMatchOffChain(int(match_id), int(home_score), int(away_score))
        return self._transact(f"settleMatchOffChain({match_id})", fn)
