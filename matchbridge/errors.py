class MatchBridgeError(Exception):
    pass


class ConfigurationMissing(MatchBridgeError):
    def __init__(self, missing) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing configuration: {', '.join(self.missing)}")


class SourceUnavailable(MatchBridgeError):
    """Provider unreachable, rate limited, or returned a body we cannot use."""


class QuotaExhausted(MatchBridgeError):
    def __init__(self, remaining: int, floor: int) -> None:
        self.remaining = remaining
        self.floor = floor
        super().__init__(f"Provider quota too low: {remaining} remaining (floor {floor})")


class LedgerError(MatchBridgeError):
    pass


class WriteRejected(LedgerError):
    """A ledger write reverted, failed gas estimation, or mined with status 0."""
