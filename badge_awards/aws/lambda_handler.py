#!/usr/bin/env python3
"""
AWS Lambda Function for Manual Badge Awards

Dispatches badge administration actions (award, revoke, recipient searches,
user badge listing) to the award components over one shared MongoDB
connection.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from badge_awards.aws.event_sink import build_event_sink
from badge_awards.config import Settings
from badge_awards.core.award_manager import AwardManager
from badge_awards.core.recipient_selector import RecipientSelector
from badge_awards.core.user_badges import UserBadgesService
from badge_awards.exceptions import AwardNotFoundError, DBError
from badge_awards.models import RecipientQuery, SearchMode, TooManyResults

logger = logging.getLogger(__name__)

LEDGER_FIELDS = ("recipient_id", "issuer_id", "issuer_role", "badge_id")
QUERY_FIELDS = ("badge_id", "issuer_role")


class BadRequest(Exception):
    pass


class LambdaAwardProcessor:
    """Runs badge award actions for Lambda events."""

    def __init__(self, settings: Optional[Settings] = None,
                 shared_db_client: Optional[AsyncIOMotorClient] = None, shared_db=None,
                 event_sink=None):
        self.settings = settings or Settings.from_env()

        if shared_db is not None:
            self.client = shared_db_client
            self.db = shared_db
            self._owns_connection = False
        else:
            self.client = None
            self.db = None
            self._owns_connection = True

        self.event_sink = event_sink or build_event_sink(
            self.settings.events_queue_url, self.settings.aws_region
        )
        self.award_manager = None
        self.recipient_selector = None
        self.user_badges = None

    async def connect_to_db(self):
        """Establish connection to MongoDB and initialize components."""
        if self._owns_connection and self.db is None:
            logger.info("🔌 Connecting to MongoDB...")
            self.client = AsyncIOMotorClient(
                self.settings.mongo_uri,
                maxPoolSize=10,
                minPoolSize=1,
                serverSelectionTimeoutMS=5000
            )
            self.db = self.client[self.settings.db_name]
            await self.db.command("ping")
            logger.info("✅ Connected to MongoDB")

        self.award_manager = AwardManager(
            shared_db_client=self.client,
            shared_db=self.db,
            event_sink=self.event_sink
        )
        self.recipient_selector = RecipientSelector(self.db)
        self.user_badges = UserBadgesService(self.db)

    def disconnect_from_db(self):
        if self._owns_connection and self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("🔌 Disconnected from MongoDB")

    async def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Run the action named in the event and build the Lambda response."""
        action = event.get("action")

        try:
            if action == "award":
                args = self._require(event, LEDGER_FIELDS)
                awarded = await self.award_manager.award(**args)
                return self._response(200, {"success": True, "awarded": awarded})

            if action == "revoke":
                args = self._require(event, LEDGER_FIELDS)
                revoked = await self.award_manager.revoke(**args)
                return self._response(200, {"success": revoked, "revoked": revoked})

            if action == "existing":
                result = await self.recipient_selector.find_existing(self._query(event))
                return self._response(200, {"success": True, "recipients": result})

            if action == "potential":
                mode = SearchMode.VALIDATE if event.get("validating") else SearchMode.RENDER
                result = await self.recipient_selector.find_potential(self._query(event), mode)
                if isinstance(result, TooManyResults):
                    return self._response(200, {"success": True, **result.to_dict()})
                return self._response(200, {"success": True, "recipients": result})

            if action == "user_badges":
                self._require(event, ("user_id",))
                result = await self.user_badges.get_user_badges(
                    user_id=event["user_id"],
                    course_id=event.get("course_id", 0),
                    page=self._int_field(event, "page"),
                    per_page=self._int_field(event, "per_page"),
                    search=event.get("search", ""),
                    only_public=bool(event.get("only_public", False)),
                    viewer_id=event.get("viewer_id")
                )
                return self._response(200, {"success": True, **result})

            raise BadRequest(f"Unknown action: {action}")

        except BadRequest as e:
            return self._response(400, {"success": False, "error": str(e)})
        except AwardNotFoundError as e:
            return self._response(404, {"success": False, "error": e.message})
        except DBError as e:
            e.log_db_error()
            return self._response(e.status, {"success": False, "error": e.message})

    def _require(self, event: Dict[str, Any], fields) -> Dict[str, Any]:
        missing = [name for name in fields if event.get(name) is None]
        if missing:
            raise BadRequest(f"Missing required fields: {', '.join(missing)}")
        return {name: event[name] for name in fields}

    def _int_field(self, event: Dict[str, Any], name: str) -> int:
        value = event.get(name, 0)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise BadRequest(f"Field {name} must be an integer, got {value!r}")

    def _query(self, event: Dict[str, Any]) -> RecipientQuery:
        args = self._require(event, QUERY_FIELDS)
        return RecipientQuery(
            badge_id=args["badge_id"],
            issuer_role=args["issuer_role"],
            search=event.get("search", ""),
            group_id=event.get("group_id"),
            excluded_ids=frozenset(event.get("excluded_ids", []))
        )

    def _response(self, status: int, body: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "statusCode": status,
            "body": json.dumps(body, default=str)
        }


# Global processor instance (reused across Lambda invocations)
processor = None


def lambda_function(event, context):
    """AWS Lambda handler for badge award actions."""
    global processor

    try:
        if processor is None:
            logger.info("🔌 Initializing LambdaAwardProcessor...")
            processor = LambdaAwardProcessor()

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(_process_async(event))
        finally:
            loop.close()

    except Exception as e:
        logger.exception(f"❌ Unexpected error in lambda_function: {e}")
        return {
            "statusCode": 500,
            "body": json.dumps({"success": False, "error": str(e)})
        }


async def _process_async(event):
    await processor.connect_to_db()
    try:
        return await processor.handle(event)
    finally:
        processor.disconnect_from_db()
