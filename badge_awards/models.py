"""
Data model for manual badge awards.

Records mirror the documents stored in MongoDB; queries and outcomes are
ephemeral values built per call.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

MANUAL_AWARD_COLLECTION = "badge_manual_award"
ISSUED_BADGE_COLLECTION = "badge_issued"

# Maximum number of potential recipients returned by a single search
MAX_USERS_PER_PAGE = 100


@dataclass
class AwardRecord:
    """A single manual grant of a badge by an issuer acting under a role"""
    badge_id: Any
    issuer_id: Any
    issuer_role: Any
    recipient_id: Any
    date_met: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def natural_key(self) -> Dict[str, Any]:
        return {
            'badge_id': self.badge_id,
            'issuer_id': self.issuer_id,
            'issuer_role': self.issuer_role,
            'recipient_id': self.recipient_id
        }

    def to_dict(self) -> Dict[str, Any]:
        doc = self.natural_key()
        doc['date_met'] = self.date_met
        return doc


@dataclass
class IssuedBadge:
    """Recipient-facing evidence of a badge, however it was earned"""
    badge_id: Any
    user_id: Any
    unique_hash: str
    date_issued: datetime
    date_expire: Optional[datetime] = None
    visible: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IssuedBadge':
        return cls(
            badge_id=data['badge_id'],
            user_id=data['user_id'],
            unique_hash=data.get('unique_hash', ''),
            date_issued=data.get('date_issued'),
            date_expire=data.get('date_expire'),
            visible=bool(data.get('visible', False))
        )


class SearchMode(Enum):
    """How a recipient search is being run"""
    RENDER = "render"          # Results will be displayed, apply the result ceiling
    VALIDATE = "validate"      # Only checking the search term, skip counting


@dataclass(frozen=True)
class RecipientQuery:
    """A single recipient search request"""
    badge_id: Any
    issuer_role: Any
    search: str = ""
    group_id: Optional[Any] = None
    excluded_ids: FrozenSet[Any] = frozenset()


@dataclass(frozen=True)
class TooManyResults:
    """Returned instead of a user list when a search matches too many users"""
    count: int
    search: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'too_many': True, 'count': self.count, 'search': self.search}


@dataclass
class BadgeRevokedEvent:
    """Emitted once per successful manual revocation"""
    badge_id: Any
    recipient_id: Any
    context_id: Any = None
    issuer_id: Any = None
    time_created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    event_name = "badge_revoked"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event_name': self.event_name,
            'badge_id': self.badge_id,
            'recipient_id': self.recipient_id,
            'context_id': self.context_id,
            'issuer_id': self.issuer_id,
            'time_created': self.time_created.isoformat()
        }
