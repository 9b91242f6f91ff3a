# pod_sync/utils/security.py
import base64, hashlib, hmac
from flask import request, abort

HMAC_HEADER = "X-Shopify-Hmac-Sha256"

def compute_webhook_hmac(secret: str, raw: bytes) -> str:
    digest = hmac.new(secret.encode(), raw, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()

def is_valid_webhook(secret: str | None, raw: bytes, their_hmac: str | None) -> bool:
    if not secret or not their_hmac:
        return False
    expected = compute_webhook_hmac(secret, raw)
    # length mismatch is invalid without comparing
    if len(expected) != len(their_hmac):
        return False
    return hmac.compare_digest(expected.encode(), their_hmac.encode())

def verify_webhook_hmac(secret: str | None) -> bytes:
    raw = request.get_data()
    if not is_valid_webhook(secret, raw, request.headers.get(HMAC_HEADER)):
        abort(401)
    return raw

def bearer_token_ok(expected: str | None) -> bool:
    if not expected:
        return True
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return False
    return hmac.compare_digest(header[len("Bearer "):].encode(), expected.encode())
