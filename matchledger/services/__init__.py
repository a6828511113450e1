from matchledger.services.stats_service import StatsService, fold_matches, match_contribution
from matchledger.services.match_service import MatchService, MatchValidationError, DeletionOutcome
from matchledger.services.user_service import UserService, ProfileValidationError
from matchledger.services.auth_service import (
    WalletAuthClient,
    AuthProviderError,
    VerifiedPayload,
    TokenVerification,
)

__all__ = [
    "StatsService",
    "fold_matches",
    "match_contribution",
    "MatchService",
    "MatchValidationError",
    "DeletionOutcome",
    "UserService",
    "ProfileValidationError",
    "WalletAuthClient",
    "AuthProviderError",
    "VerifiedPayload",
    "TokenVerification",
]
