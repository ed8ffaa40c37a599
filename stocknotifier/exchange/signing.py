from __future__ import annotations

import hashlib
import hmac


def sign(secret: str, message: str) -> str:
    """HMAC-SHA256 of `message` keyed by `secret`, as lowercase hex."""
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
