"""
Razorpay webhook signature verification.

Razorpay signs the exact request body with HMAC-SHA256 keyed by the webhook
secret and sends the hex digest in `X-Razorpay-Signature`. Verification must
run on the raw bytes; re-serialized JSON is not byte-identical.
"""

import hashlib
import hmac

SIGNATURE_HEADER = "x-razorpay-signature"


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, provided_signature: str, secret: str) -> bool:
    """Constant-time check of a webhook signature. Never raises on mismatch."""
    expected = compute_signature(raw_body, secret)
    # Compare as bytes: compare_digest rejects non-ASCII str input
    return hmac.compare_digest(
        expected.encode("utf-8"), provided_signature.encode("utf-8")
    )
