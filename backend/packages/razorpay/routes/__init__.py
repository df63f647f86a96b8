"""Razorpay API routes."""

from packages.razorpay.routes import subscriptions, webhooks

__all__ = ["subscriptions", "webhooks"]
