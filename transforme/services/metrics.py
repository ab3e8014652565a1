"""Prometheus metric definitions."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

photo_analyses_total = Counter(
    "photo_analyses_total",
    "Class-log photo analyses by outcome.",
    labelnames=["status"],
)

vision_call_seconds = Histogram(
    "vision_call_seconds",
    "Latency of a single vision model call in seconds.",
)

invoice_recalculations_total = Counter(
    "invoice_recalculations_total",
    "Invoice total recalculations by triggering mutation.",
    labelnames=["trigger"],
)

bank_sync_items_total = Counter(
    "bank_sync_items_total",
    "Bank accounts and transactions written by a sync, by provider.",
    labelnames=["provider"],
)

pdf_generation_seconds = Histogram(
    "pdf_generation_seconds",
    "Time spent rendering a single invoice PDF.",
)

__all__ = [
    "bank_sync_items_total",
    "invoice_recalculations_total",
    "pdf_generation_seconds",
    "photo_analyses_total",
    "vision_call_seconds",
]
