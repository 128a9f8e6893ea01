"""
Manual Badge Awards

Award ledger and recipient selection for manually-awarded badges.
"""

__version__ = "0.1.0"

# Core classes
from .core import AwardManager, RecipientSelector, UserBadgesService

# Models
from .models import (
    AwardRecord, IssuedBadge, RecipientQuery, SearchMode, TooManyResults, BadgeRevokedEvent
)

from .exceptions import DBError, AwardNotFoundError

__all__ = [
    "AwardManager", "RecipientSelector", "UserBadgesService",
    "AwardRecord", "IssuedBadge", "RecipientQuery", "SearchMode", "TooManyResults",
    "BadgeRevokedEvent", "DBError", "AwardNotFoundError"
]
