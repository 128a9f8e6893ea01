import logging

logger = logging.getLogger(__name__)


class DBError(Exception):
    def __init__(self, status: int, reason: str, collection: str, message: str):
        super().__init__(message)
        self.message = message
        self.status = status
        self.reason = reason
        self.collection = collection

    def log_db_error(self):
        logger.error("❌ Database Request Failed:")
        logger.error(f"  ➤ Error  : {self.message}")
        logger.error(f"  ➤ Status : {self.status}")
        logger.error(f"  ➤ Reason : {self.reason}")
        logger.error(f"  ➤ Collection : {self.collection}")


class AwardNotFoundError(DBError):
    """Raised when revoking a manual award that was never granted."""

    def __init__(self, badge_id, issuer_id, issuer_role, recipient_id):
        self.badge_id = badge_id
        self.issuer_id = issuer_id
        self.issuer_role = issuer_role
        self.recipient_id = recipient_id
        super().__init__(
            status=404,
            reason="Badge award not found",
            collection="badge_manual_award",
            message=(
                f"No manual award of badge {badge_id} to {recipient_id} "
                f"by issuer {issuer_id} (role {issuer_role})"
            ),
        )
