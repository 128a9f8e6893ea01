#!/usr/bin/env python3
"""
Manual Badge Award Manager

Grants and revokes manually-awarded badges. Award records live in the
badge_manual_award collection; revoking also clears the recipient's issued
badge and emits a badge revoked event.
"""

import logging
import traceback
from typing import Any, Optional
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from badge_awards.aws.event_sink import LoggingEventSink
from badge_awards.core.providers import resolve_badge_context
from badge_awards.exceptions import AwardNotFoundError, DBError
from badge_awards.models import (
    ISSUED_BADGE_COLLECTION,
    MANUAL_AWARD_COLLECTION,
    AwardRecord,
    BadgeRevokedEvent,
)

logger = logging.getLogger(__name__)


class AwardManager:
    """
    Award ledger for manual badge grants.

    Each call is a short sequence of reads and writes against the database;
    nothing is cached between calls.
    """

    def __init__(self, mongo_uri: Optional[str] = None, db_name: Optional[str] = None,
                 shared_db_client: Optional[AsyncIOMotorClient] = None, shared_db=None,
                 event_sink=None):
        """
        Initialize the Award Manager.

        Args:
            mongo_uri: MongoDB connection URI, used when no shared database is given
            db_name: Database name, used when no shared database is given
            shared_db_client: Already connected Motor client to reuse
            shared_db: Database handle to reuse
            event_sink: Receiver of badge revoked events (defaults to logging them)
        """
        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.event_sink = event_sink or LoggingEventSink()

        if shared_db is not None:
            self.client = shared_db_client
            self.db = shared_db
            self._owns_connection = False
        else:
            self.client = None
            self.db = None
            self._owns_connection = True

    ############################################################################
                # Connection lifecycle
    ############################################################################

    async def connect_to_db(self):
        """Open our own MongoDB connection (no-op with a shared database)."""
        if not self._owns_connection:
            return

        try:
            self.client = AsyncIOMotorClient(self.mongo_uri)
            self.db = self.client[self.db_name]
            logger.info("✅ Award Manager connected to MongoDB")
        except Exception as e:
            logger.error(f"❌ Error connecting to database: {e}")
            raise

    def disconnect_from_db(self):
        if not self._owns_connection:
            return

        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("🔌 Award Manager disconnected from MongoDB")

    async def __aenter__(self):
        await self.connect_to_db()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.warning(f"⚠️  Exception caught in Award Manager context: {exc_type.__name__}: {exc_val}")
            logger.debug(''.join(traceback.format_exception(exc_type, exc_val, exc_tb)))
        self.disconnect_from_db()

    async def ensure_indexes(self):
        """Create the unique index on the award natural key."""
        try:
            await self.db[MANUAL_AWARD_COLLECTION].create_index([
                ("badge_id", ASCENDING),
                ("issuer_id", ASCENDING),
                ("issuer_role", ASCENDING),
                ("recipient_id", ASCENDING)
            ], unique=True, name="manual_award_natural_key")
            await self.db[ISSUED_BADGE_COLLECTION].create_index([
                ("badge_id", ASCENDING),
                ("user_id", ASCENDING)
            ])
        except PyMongoError as e:
            raise self._storage_error(MANUAL_AWARD_COLLECTION, "Index creation failed", e) from e

    ############################################################################
                # Award / revoke
    ############################################################################

    async def award(self, recipient_id: Any, issuer_id: Any, issuer_role: Any, badge_id: Any) -> bool:
        """
        Manually award a badge.

        Args:
            recipient_id: User receiving the badge
            issuer_id: User issuing the badge
            issuer_role: Role the issuer is acting under
            badge_id: Badge being awarded

        Returns:
            True if a new award record was stored, False if the same award already exists
        """
        record = AwardRecord(
            badge_id=badge_id,
            issuer_id=issuer_id,
            issuer_role=issuer_role,
            recipient_id=recipient_id
        )
        collection = self.db[MANUAL_AWARD_COLLECTION]

        try:
            existing = await collection.find_one(record.natural_key(), {"_id": 1})
            if existing is not None:
                logger.info(f"ℹ️  Badge {badge_id} already awarded to {recipient_id} by {issuer_id} (role {issuer_role})")
                return False

            result = await collection.insert_one(record.to_dict())

        except DuplicateKeyError:
            # Lost the race against an identical concurrent award
            logger.info(f"ℹ️  Concurrent duplicate award of badge {badge_id} to {recipient_id} rejected")
            return False
        except PyMongoError as e:
            raise self._storage_error(MANUAL_AWARD_COLLECTION, "Award insert failed", e) from e

        awarded = result.inserted_id is not None
        if awarded:
            logger.info(f"🏅 Awarded badge {badge_id} to {recipient_id} (issuer {issuer_id}, role {issuer_role})")
        return awarded

    async def revoke(self, recipient_id: Any, issuer_id: Any, issuer_role: Any, badge_id: Any) -> bool:
        """
        Revoke a manually awarded badge.

        The award must exist for the exact issuer role, but every manual award of
        the badge to the recipient by this issuer is removed whatever its role.
        The recipient's issued badge is removed too if there is one.

        Raises:
            AwardNotFoundError: No award matches the four identifiers
            DBError: The database failed

        Returns:
            True if the award records were deleted
        """
        key = AwardRecord(
            badge_id=badge_id,
            issuer_id=issuer_id,
            issuer_role=issuer_role,
            recipient_id=recipient_id
        ).natural_key()

        try:
            existing = await self.db[MANUAL_AWARD_COLLECTION].find_one(key, {"_id": 1})
            if existing is None:
                raise AwardNotFoundError(badge_id, issuer_id, issuer_role, recipient_id)

            context_id = await resolve_badge_context(self.db, badge_id)

            awards_deleted = await self.db[MANUAL_AWARD_COLLECTION].delete_many({
                "badge_id": badge_id,
                "issuer_id": issuer_id,
                "recipient_id": recipient_id
            })
            if not awards_deleted.acknowledged or awards_deleted.deleted_count == 0:
                logger.warning(f"⚠️  Award records for badge {badge_id}, recipient {recipient_id} were not deleted")
                return False

            issued_deleted = await self.db[ISSUED_BADGE_COLLECTION].delete_many({
                "badge_id": badge_id,
                "user_id": recipient_id
            })

        except PyMongoError as e:
            raise self._storage_error(MANUAL_AWARD_COLLECTION, "Revoke failed", e) from e

        logger.info(
            f"🚫 Revoked badge {badge_id} from {recipient_id}: "
            f"{awards_deleted.deleted_count} award(s), {issued_deleted.deleted_count} issued badge(s) removed"
        )

        self.event_sink.emit(BadgeRevokedEvent(
            badge_id=badge_id,
            recipient_id=recipient_id,
            context_id=context_id,
            issuer_id=issuer_id
        ))
        return True

    def _storage_error(self, collection: str, reason: str, error: Exception) -> DBError:
        logger.error(f"❌ {reason} on {collection}: {error}")
        return DBError(
            status=500,
            reason=reason,
            collection=collection,
            message=str(error)
        )
