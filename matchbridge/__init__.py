"""
Fixture-to-ledger automation.

Exports the provider client and sources, the ledger adapter, and the
registration/settlement services used by the CLI and ``scripts/``.
"""

from .api import FootballApiClient
from .domain import Fixture, OnChainMatch, ScoreResult
from .ledger import Ledger, Web3Ledger
from .orchestrator import RunOrchestrator, RunReport, RunState, run_automation
from .registrar import MatchRegistrar
from .settlement import GRACE_SECONDS, SettlementScanner
from .sources import ApiFootballSource, FixtureSource, ScoreSource, build_source

__all__ = [
    "FootballApiClient",
    "Fixture",
    "OnChainMatch",
    "ScoreResult",
    "Ledger",
    "Web3Ledger",
    "RunOrchestrator",
    "RunReport",
    "RunState",
    "run_automation",
    "MatchRegistrar",
    "GRACE_SECONDS",
    "SettlementScanner",
    "ApiFootballSource",
    "FixtureSource",
    "ScoreSource",
    "build_source",
]
