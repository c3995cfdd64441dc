import hashlib
import hmac
from typing import Optional

SIGNATURE_PREFIX = "sha256="


def compute_hub_signature(body: bytes, secret: str) -> str:
    """
    Compute the X-Hub-Signature-256 header value Meta sends with Cloud API webhooks.
    """
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_hub_signature(body: bytes, secret: str, signature: Optional[str]) -> bool:
    """
    Verify an X-Hub-Signature-256 header against the raw request body.
    Returns False for a missing secret, a missing header, a wrong prefix or
    a header that is not plain ASCII.
    """
    if not secret or not signature:
        return False
    if not signature.startswith(SIGNATURE_PREFIX):
        return False
    # Header values arrive latin-1 decoded; compare_digest rejects non-ASCII str
    if not signature.isascii():
        return False
    expected = compute_hub_signature(body, secret)
    return hmac.compare_digest(expected, signature.strip())
