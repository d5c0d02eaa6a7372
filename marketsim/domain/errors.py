"""Domain errors raised by the simulation engine."""


class MarketSimError(Exception):
    """Base class for simulation errors."""


class InvalidBotClass(MarketSimError):
    """Bot class outside the known strategy families."""


class InsufficientHistory(MarketSimError):
    """Stock has no seed point to value from."""


class InsufficientFunds(MarketSimError):
    """Balance cannot cover a purchase or withdrawal."""


class InsufficientHolding(MarketSimError):
    """Portfolio holds less stock than a sale requires."""


class InvalidTransactionType(MarketSimError):
    """Transaction type the engine cannot apply."""


class LookupFailure(MarketSimError):
    """Collaborator unreachable or entity absent."""


class LookupTimeout(LookupFailure):
    """Collaborator did not answer within the lookup timeout."""
