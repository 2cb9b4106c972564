"""Main application entry point for the restaurant order service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any

import boto3
from fastapi import FastAPI

from restaurant_order_service.handlers.api_handler import create_app
from restaurant_order_service.models.payment_models import PaymentMethod
from restaurant_order_service.observability import configure_logging, setup_observability
from restaurant_order_service.repositories.order_repositories import (
    OrderItemRepository,
    OrderRepository,
)
from restaurant_order_service.repositories.payment_repository import PaymentRepository
from restaurant_order_service.repositories.table_repository import TableRepository
from restaurant_order_service.services.customer_directory_client import CustomerDirectoryClient
from restaurant_order_service.services.menu_catalog_client import MenuCatalogClient
from restaurant_order_service.services.order_coordinator import OrderCoordinator
from restaurant_order_service.services.payment_ledger import PaymentLedger
from restaurant_order_service.services.table_registry import TableRegistry

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """The wired service layer."""

    order_coordinator: OrderCoordinator
    table_registry: TableRegistry
    payment_ledger: PaymentLedger


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        # Local DynamoDB - use environment variables for credentials
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )

    logger.info(f"Using AWS DynamoDB in region {region}")
    # Production - boto3 will use default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=region)


def _required_env(*names: str) -> list[str]:
    values = [os.getenv(name) for name in names]
    if not all(values):
        raise ValueError(f"{' and '.join(names)} must be set in environment")
    return values  # type: ignore[return-value]


def create_services(dynamodb_resource: Any) -> Services:
    """Wire repositories, collaborator clients and services from environment variables.

    Args:
        dynamodb_resource: Boto3 DynamoDB resource

    Returns:
        Services: Coordinator, registry and ledger sharing one set of repositories

    Raises:
        ValueError: If collaborator URLs or API keys are missing
    """
    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "restaurant-orders")
    order_numbers_table = os.getenv("DYNAMODB_ORDER_NUMBERS_TABLE", "restaurant-order-numbers")
    order_items_table = os.getenv("DYNAMODB_ORDER_ITEMS_TABLE", "restaurant-order-items")
    tables_table = os.getenv("DYNAMODB_TABLES_TABLE", "restaurant-tables")
    payments_table = os.getenv("DYNAMODB_PAYMENTS_TABLE", "restaurant-payments")

    order_repository = OrderRepository(dynamodb_resource, orders_table, order_numbers_table)
    item_repository = OrderItemRepository(dynamodb_resource, order_items_table)
    table_repository = TableRepository(dynamodb_resource, tables_table)
    payment_repository = PaymentRepository(dynamodb_resource, payments_table)

    logger.info(
        f"Repositories configured - orders: {orders_table}, items: {order_items_table}, "
        f"tables: {tables_table}, payments: {payments_table}"
    )

    menu_url, menu_key = _required_env("MENU_SERVICE_BASE_URL", "MENU_SERVICE_API_KEY")
    customer_url, customer_key = _required_env(
        "CUSTOMER_SERVICE_BASE_URL", "CUSTOMER_SERVICE_API_KEY"
    )
    menu_catalog = MenuCatalogClient(base_url=menu_url, api_key=menu_key)
    customer_directory = CustomerDirectoryClient(base_url=customer_url, api_key=customer_key)

    logger.info(f"Collaborators configured - menu: {menu_url}, customers: {customer_url}")

    table_registry = TableRegistry(table_repository, order_repository)
    payment_ledger = PaymentLedger(payment_repository, order_repository)
    order_coordinator = OrderCoordinator(
        order_repository=order_repository,
        item_repository=item_repository,
        menu_catalog=menu_catalog,
        table_occupancy=table_registry,
        payment_processor=payment_ledger,
        customer_directory=customer_directory,
        default_payment_method=PaymentMethod(os.getenv("DEFAULT_PAYMENT_METHOD", "CASH")),
        retry_delay_seconds=float(os.getenv("ORDER_NUMBER_RETRY_DELAY_SECONDS", "0.1")),
    )
    payment_ledger.attach_status_updater(order_coordinator)

    logger.info("Services initialized")

    return Services(
        order_coordinator=order_coordinator,
        table_registry=table_registry,
        payment_ledger=payment_ledger,
    )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Initializing restaurant order service...")

    services = create_services(get_dynamodb_resource())
    app = create_app(
        order_coordinator=services.order_coordinator,
        table_registry=services.table_registry,
        payment_ledger=services.payment_ledger,
    )
    setup_observability(app)

    logger.info("Restaurant order service initialized successfully")

    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
