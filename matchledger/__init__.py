"""Match tracking and leaderboard API for a wallet-authenticated gaming league."""

__version__ = "1.0.0"
