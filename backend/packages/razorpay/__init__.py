"""
Razorpay package - subscription billing backed by Razorpay.

Subscriptions are started and changed through the action endpoints and kept
in sync with Razorpay through signed webhooks; the webhook reconciler is the
source of truth for local subscription state.
"""
