"""
Badge event sinks

Revocation events are handed off fire-and-forget: a sink never raises back
into the award manager.
"""

import json
import logging
from typing import Optional

import boto3

from badge_awards.models import BadgeRevokedEvent

logger = logging.getLogger(__name__)


class LoggingEventSink:
    """Writes events to the log. Used when no queue is configured."""

    def emit(self, event: BadgeRevokedEvent):
        logger.info(f"📣 {event.event_name}: {json.dumps(event.to_dict(), default=str)}")


class SqsEventSink:
    """Publishes events to an SQS queue for notification and audit consumers."""

    def __init__(self, queue_url: str, region_name: str = "us-east-1", sqs_client=None):
        self.queue_url = queue_url
        self.region_name = region_name
        self.sqs = sqs_client or boto3.client('sqs', region_name=region_name)

    def emit(self, event: BadgeRevokedEvent):
        try:
            response = self.sqs.send_message(
                QueueUrl=self.queue_url,
                MessageBody=json.dumps(event.to_dict(), default=str),
                MessageAttributes={
                    'EventName': {
                        'DataType': 'String',
                        'StringValue': event.event_name
                    },
                    'BadgeId': {
                        'DataType': 'String',
                        'StringValue': str(event.badge_id)
                    }
                }
            )
            logger.info(f"📨 Sent {event.event_name} for badge {event.badge_id} (message {response.get('MessageId')})")
        except Exception as e:
            logger.error(f"❌ Error sending {event.event_name} to queue: {e}")


def build_event_sink(queue_url: Optional[str], region_name: str = "us-east-1"):
    if queue_url:
        return SqsEventSink(queue_url=queue_url, region_name=region_name)
    return LoggingEventSink()
