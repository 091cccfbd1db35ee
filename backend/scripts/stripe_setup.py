#!/usr/bin/env python3
"""
Stripe account setup and connectivity checks.

Usage:
    # Register the webhook endpoint and print its signing secret
    python stripe_setup.py --action create-webhook --url https://studio.example.com/webhooks/stripe

    # Verify the secret key can reach the Stripe API
    python stripe_setup.py --action check

Reads STRIPE_SECRET_KEY from the environment or .env, like the API service.
"""

import argparse
import asyncio
import logging
import sys

from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.config import settings
from studio_payments.exceptions import ServiceError
from studio_payments.schemas.stripe_event import PAYMENT_INTENT_SUCCEEDED

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

WEBHOOK_EVENTS = [PAYMENT_INTENT_SUCCEEDED]


async def create_webhook(adapter: StripeAdapter, url: str) -> None:
    """Register ``url`` for the events the webhook receiver settles."""
    logger.info("Creating webhook endpoint: %s", url)
    endpoint = await adapter.create_webhook_endpoint(url, WEBHOOK_EVENTS)

    print("\nWebhook created successfully!")
    print(f"ID: {endpoint['id']}")
    print(f"Signing Secret: {endpoint['secret']}")
    print("\nAdd this to the service environment and restart it:")
    print(f"STRIPE_WEBHOOK_SECRET={endpoint['secret']}")


async def check(adapter: StripeAdapter) -> None:
    """List one customer to prove the key works."""
    logger.info("Checking Stripe API...")
    count = await adapter.check_connectivity()
    print(f"Stripe connection OK. Found {count} customer(s).")


def main():
    """CLI entry point for Stripe setup."""
    parser = argparse.ArgumentParser(
        description="Stripe webhook registration and connectivity check"
    )

    parser.add_argument(
        "--action",
        choices=["create-webhook", "check"],
        required=True,
        help="Action to perform"
    )

    parser.add_argument(
        "--url",
        help="Public webhook URL (required for create-webhook)"
    )

    args = parser.parse_args()

    if args.action == "create-webhook" and not args.url:
        parser.error("--url is required for create-webhook")

    adapter = StripeAdapter.from_settings(settings)
    if not adapter.configured:
        print("Error: STRIPE_SECRET_KEY is not set")
        sys.exit(1)

    try:
        if args.action == "create-webhook":
            asyncio.run(create_webhook(adapter, args.url))
        elif args.action == "check":
            asyncio.run(check(adapter))
    except ServiceError as e:
        logger.error("Stripe setup failed: %s", e.message)
        print(f"Error: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
