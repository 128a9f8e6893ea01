"""Core badge award components"""

from .award_manager import AwardManager
from .recipient_selector import RecipientSelector
from .user_badges import UserBadgesService

__all__ = ["AwardManager", "RecipientSelector", "UserBadgesService"]
