"""Business metrics for Prometheus monitoring."""
from prometheus_client import Counter

# Charge metrics
payment_intents_created_total = Counter(
    "payment_intents_created_total",
    "Total payment intents opened",
    labelnames=["currency", "customer"],  # customer: authenticated, guest
)

customer_references_created_total = Counter(
    "customer_references_created_total",
    "Total Stripe customers created for portal users",
)

# Webhook metrics
webhook_events_total = Counter(
    "webhook_events_total",
    "Total Stripe webhook deliveries",
    labelnames=["event_type", "outcome"],  # outcome: recorded, duplicate, ignored, rejected
)

# Settlement metrics
settlements_total = Counter(
    "settlements_total",
    "Total settlement attempts",
    labelnames=["outcome"],  # applied, invoice_not_found, failed
)

settled_amount_total = Counter(
    "settled_amount_total",
    "Total amount settled against invoices in cents",
    labelnames=["currency"],
)
