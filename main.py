"""
AWS Lambda Handler - Manual Badge Awards
Main entry point for AWS Lambda deployment
"""

import json
import logging

from badge_awards.aws.lambda_handler import lambda_function
from badge_awards.config import configure_logging, Settings

configure_logging(Settings.from_env(require_mongo=False).log_level)
logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    """
    AWS Lambda entry point for badge award actions.

    Args:
        event: AWS Lambda event object with an "action" and its arguments
        context: AWS Lambda context object

    Returns:
        dict: Lambda response with statusCode and body
    """
    try:
        logger.info(f"Lambda invoked: {getattr(context, 'function_name', 'local')}, action={event.get('action')}")
        return lambda_function(event, context)

    except Exception as e:
        logger.error(f"Lambda handler error: {str(e)}")
        return {
            "statusCode": 500,
            "body": json.dumps({
                "success": False,
                "error": str(e),
                "message": "Badge award action failed"
            })
        }
