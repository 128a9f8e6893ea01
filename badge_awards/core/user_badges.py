"""
Issued badges of a single user.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from badge_awards.exceptions import DBError
from badge_awards.models import ISSUED_BADGE_COLLECTION, IssuedBadge

logger = logging.getLogger(__name__)


class UserBadgesService:

    def __init__(self, db):
        self.db = db

    async def get_user_badges(self, user_id: Any, course_id: Any = 0, page: int = 0, per_page: int = 0,
                              search: str = "", only_public: bool = False,
                              viewer_id: Optional[Any] = None) -> Dict[str, Any]:
        """
        List the badges issued to a user.

        Args:
            user_id: Owner of the badges
            course_id: Only badges of this course, 0 for all
            page: Page to return (0-based), used when per_page > 0
            per_page: Badges per page, 0 for no paging
            search: Case-insensitive substring of the badge name
            only_public: Only badges the user made visible
            viewer_id: User asking; anyone but the owner only sees public badges

        Returns:
            Dictionary with the badges and any warnings
        """
        if viewer_id is not None and viewer_id != user_id:
            only_public = True

        try:
            user = await self.db.users.find_one({"_id": user_id}, {"deleted": 1})
            if not user or user.get("deleted"):
                raise DBError(
                    status=404,
                    reason="User not found",
                    collection="users",
                    message=f"User {user_id} not found"
                )

            issued_filter: Dict[str, Any] = {"user_id": user_id}
            if only_public:
                issued_filter["visible"] = True
            issued = await self.db[ISSUED_BADGE_COLLECTION].find(issued_filter).to_list(None)

            badge_filter: Dict[str, Any] = {"_id": {"$in": [doc["badge_id"] for doc in issued]}}
            if course_id:
                badge_filter["course_id"] = course_id
            if search:
                badge_filter["name"] = {"$regex": re.escape(search), "$options": "i"}
            badges = {
                badge["_id"]: badge
                for badge in await self.db.badges.find(badge_filter).to_list(None)
            }
        except PyMongoError as e:
            logger.error(f"❌ Error listing badges of user {user_id}: {e}")
            raise DBError(
                status=500,
                reason="User badges query failed",
                collection=ISSUED_BADGE_COLLECTION,
                message=str(e)
            ) from e

        entries: List[Dict[str, Any]] = []
        for doc in issued:
            badge = badges.get(doc["badge_id"])
            if badge is None:
                continue
            issued_badge = IssuedBadge.from_dict(doc)
            entries.append({
                "badge_id": issued_badge.badge_id,
                "name": badge.get("name", ""),
                "description": badge.get("description", ""),
                "course_id": badge.get("course_id"),
                "unique_hash": issued_badge.unique_hash,
                "date_issued": issued_badge.date_issued,
                "date_expire": issued_badge.date_expire,
                "visible": issued_badge.visible
            })

        # Newest first, ties broken by badge id
        entries.sort(key=lambda entry: str(entry["badge_id"]))
        entries.sort(key=lambda entry: entry["date_issued"].timestamp() if entry["date_issued"] else 0, reverse=True)

        if per_page > 0:
            start = page * per_page
            entries = entries[start:start + per_page]

        return {"badges": entries, "warnings": []}
