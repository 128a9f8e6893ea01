#!/usr/bin/env python3
"""
Badge Recipient Selector

Finds the users an issuer can pick from when manually awarding a badge:
existing recipients (already awarded the badge under the issuer role) and
potential recipients (enrolled, able to earn the badge, not yet awarded).
Both searches share one filter pipeline over the enrolled users of the
badge's context.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pymongo.errors import PyMongoError

from badge_awards.core.providers import (
    EARN_BADGE_CAPABILITY,
    EnrolmentProvider,
    GroupMembershipProvider,
    UserSearchProvider,
    resolve_badge_context,
)
from badge_awards.exceptions import DBError
from badge_awards.models import (
    MANUAL_AWARD_COLLECTION,
    MAX_USERS_PER_PAGE,
    RecipientQuery,
    SearchMode,
    TooManyResults,
)

logger = logging.getLogger(__name__)

EXISTING_RECIPIENTS_LABEL = "Existing recipients"
POTENTIAL_RECIPIENTS_LABEL = "Potential recipients"

USER_FIELDS = {"_id": 1, "username": 1, "firstname": 1, "lastname": 1, "email": 1}

RecipientGroups = Dict[str, List[Dict[str, Any]]]


class RecipientSelector:
    """
    Recipient searches for a badge and issuer role.

    Holds no state between calls; ids already picked by the caller are
    passed in with every potential recipients query.
    """

    def __init__(self, db, enrolment_provider: Optional[EnrolmentProvider] = None,
                 search_provider: Optional[UserSearchProvider] = None,
                 group_provider: Optional[GroupMembershipProvider] = None):
        self.db = db
        self.enrolment_provider = enrolment_provider or EnrolmentProvider(db)
        self.search_provider = search_provider or UserSearchProvider()
        self.group_provider = group_provider or GroupMembershipProvider(db)

    async def find_existing(self, query: RecipientQuery) -> RecipientGroups:
        """Users holding a manual award of the badge under the issuer role."""
        try:
            awarded_ids = await self._awarded_recipient_ids(query)
            user_filter = await self._build_user_filter(query, {"_id": {"$in": awarded_ids}})
            users = await self._fetch_users(user_filter, query.search)
        except PyMongoError as e:
            raise self._storage_error("Existing recipients query failed", e) from e

        return {EXISTING_RECIPIENTS_LABEL: users}

    async def find_potential(self, query: RecipientQuery,
                             mode: SearchMode = SearchMode.RENDER) -> Union[RecipientGroups, TooManyResults]:
        """
        Enrolled users who have not been awarded the badge under the issuer role.

        Users listed in query.excluded_ids are left out as well. Unless
        validating, a search matching more than MAX_USERS_PER_PAGE users
        returns TooManyResults instead of a list.
        """
        try:
            awarded_ids = await self._awarded_recipient_ids(query)
            awarded = set(awarded_ids)
            hidden_ids = list(awarded_ids) + [
                user_id for user_id in query.excluded_ids if user_id not in awarded
            ]
            user_filter = await self._build_user_filter(query, {"_id": {"$nin": hidden_ids}})

            if mode is not SearchMode.VALIDATE:
                count = await self.db.users.count_documents(user_filter)
                if count > MAX_USERS_PER_PAGE:
                    logger.info(f"🔎 {count} potential recipients for '{query.search}', asking for a narrower search")
                    return TooManyResults(count=count, search=query.search)

            users = await self._fetch_users(user_filter, query.search)
        except PyMongoError as e:
            raise self._storage_error("Potential recipients query failed", e) from e

        if not users:
            return {}
        return {POTENTIAL_RECIPIENTS_LABEL: users}

    ############################################################################
                # Shared filter pipeline
    ############################################################################

    async def _awarded_recipient_ids(self, query: RecipientQuery) -> List[Any]:
        awards = await self.db[MANUAL_AWARD_COLLECTION].find({
            "badge_id": query.badge_id,
            "issuer_role": query.issuer_role
        }, {"recipient_id": 1}).to_list(None)

        recipient_ids = []
        seen = set()
        for award in awards:
            recipient_id = award["recipient_id"]
            if recipient_id not in seen:
                seen.add(recipient_id)
                recipient_ids.append(recipient_id)
        return recipient_ids

    async def _build_user_filter(self, query: RecipientQuery, award_condition: Dict[str, Any]) -> Dict[str, Any]:
        """Combine enrolment, search, group and award conditions into one users filter."""
        context_id = await resolve_badge_context(self.db, query.badge_id)
        enrolled_ids = await self.enrolment_provider.enrolled_user_ids(context_id, EARN_BADGE_CAPABILITY)

        conditions = [
            {"_id": {"$in": enrolled_ids}},
            self.search_provider.search_filter(query.search),
            award_condition
        ]

        group_condition = await self.group_provider.group_filter(query.group_id)
        if group_condition:
            conditions.append(group_condition)

        return {"$and": conditions}

    async def _fetch_users(self, user_filter: Dict[str, Any], search: str) -> List[Dict[str, Any]]:
        users = await self.db.users.find(user_filter, USER_FIELDS).to_list(None)
        users.sort(key=self.search_provider.order_key(search))

        return [
            {
                "id": user["_id"],
                "username": user.get("username", ""),
                "firstname": user.get("firstname", ""),
                "lastname": user.get("lastname", ""),
                "email": user.get("email", "")
            }
            for user in users
        ]

    def _storage_error(self, reason: str, error: Exception) -> DBError:
        logger.error(f"❌ {reason}: {error}")
        return DBError(
            status=500,
            reason=reason,
            collection="users",
            message=str(error)
        )
