"""AWS Lambda handler serving the order service API through API Gateway.

The FastAPI application and its Mangum adapter are built once per Lambda
container and reused across warm invocations.
"""

import logging
import os
from typing import Any

from fastapi import FastAPI
from mangum import Mangum

import main

logger = logging.getLogger(__name__)

_fastapi_app: FastAPI | None = None
_mangum_handler: Mangum | None = None


def get_fastapi_app() -> FastAPI:
    """Retrieve the application built by main at import time.

    Returns:
        Configured FastAPI application
    """
    global _fastapi_app

    if _fastapi_app is None:
        _fastapi_app = main.app

    return _fastapi_app


def get_mangum_handler() -> Mangum:
    """Create or retrieve the cached Mangum adapter."""
    global _mangum_handler

    if _mangum_handler is None:
        _mangum_handler = Mangum(get_fastapi_app(), lifespan="off")

    return _mangum_handler


# Build the app during cold start (skip in test mode)
if os.getenv("ENVIRONMENT") != "test":
    get_mangum_handler()


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda entry point for API Gateway requests.

    Args:
        event: The API Gateway event payload
        context: The Lambda context object

    Returns:
        Response dict with statusCode and body
    """
    logger.info(f"Received Lambda invocation, request_id: {context.aws_request_id}")

    try:
        result: dict[str, Any] = get_mangum_handler()(event, context)
        return result
    except Exception as e:
        logger.exception(f"Unhandled error in Lambda handler: {e}")
        return {
            "statusCode": 500,
            "body": "Internal server error",
        }
