"""
MongoDB-backed collaborators used by the award selectors.

Each provider turns one external concern (enrolment, user search and
ordering, group membership) into a filter fragment or id list that the
selectors compose into a users query.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

EARN_BADGE_CAPABILITY = "moodle/badges:earnbadge"

# Context used for badges that do not belong to a course
SITE_CONTEXT = "site"

SEARCH_FIELDS = ("username", "firstname", "lastname", "email")


async def resolve_badge_context(db, badge_id: Any) -> Any:
    """
    Get the context a badge lives in.

    Site badges (no course) resolve to the site context. An unknown badge
    resolves to None.
    """
    badge = await db.badges.find_one({"_id": badge_id}, {"context_id": 1, "course_id": 1})
    if not badge:
        logger.debug(f"Badge {badge_id} not found while resolving its context")
        return None

    if not badge.get("course_id"):
        return SITE_CONTEXT
    return badge.get("context_id", badge["course_id"])


class EnrolmentProvider:
    """Users enrolled in a context with a given capability"""

    def __init__(self, db):
        self.db = db

    async def enrolled_user_ids(self, context_id: Any, capability: str = EARN_BADGE_CAPABILITY) -> List[Any]:
        # Unknown badges have no context, and so no enrolled users
        if context_id is None:
            return []

        enrolments = await self.db.user_enrolments.find({
            "context_id": context_id,
            "capabilities": capability,
            "active": {"$ne": False}
        }, {"user_id": 1}).to_list(None)

        user_ids = []
        seen = set()
        for enrolment in enrolments:
            user_id = enrolment["user_id"]
            if user_id not in seen:
                seen.add(user_id)
                user_ids.append(user_id)
        return user_ids


class UserSearchProvider:
    """Free-text user search and the canonical user ordering"""

    def search_filter(self, search: str) -> Dict[str, Any]:
        """
        Build a users filter for a search string.

        Every whitespace-separated term must match one of the search fields.
        Deleted users never match.
        """
        conditions: List[Dict[str, Any]] = [{"deleted": {"$ne": True}}]

        for term in (search or "").split():
            pattern = re.escape(term)
            conditions.append({
                "$or": [{name: {"$regex": pattern, "$options": "i"}} for name in SEARCH_FIELDS]
            })

        if len(conditions) == 1:
            return conditions[0]
        return {"$and": conditions}

    def order_key(self, search: str) -> Callable[[Dict[str, Any]], tuple]:
        """
        Sort key giving a total order over users.

        Users whose full, first or last name equals the search come first,
        then by last name, first name and id.
        """
        needle = (search or "").strip().lower()

        def key(user: Dict[str, Any]) -> tuple:
            firstname = (user.get("firstname") or "").lower()
            lastname = (user.get("lastname") or "").lower()
            fullname = f"{firstname} {lastname}".strip()
            exact = bool(needle) and needle in (fullname, firstname, lastname)
            return (0 if exact else 1, lastname, firstname, str(user.get("_id")))

        return key


class GroupMembershipProvider:
    """Restricts users to the members of a group"""

    def __init__(self, db):
        self.db = db

    async def group_filter(self, group_id: Any) -> Optional[Dict[str, Any]]:
        if not group_id:
            return None

        members = await self.db.groups_members.find({"group_id": group_id}, {"user_id": 1}).to_list(None)
        member_ids = [member["user_id"] for member in members]
        return {"_id": {"$in": member_ids}}
