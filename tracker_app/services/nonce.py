"""
Signed, time-limited form nonces (CSRF tokens) for the admin forms.

The form action is used as the serializer salt, so a nonce issued for one
form does not validate for another.
"""

from typing import Optional

from itsdangerous import BadData, URLSafeTimedSerializer

from tracker_app.config import settings


def _serializer(action: str, secret_key: Optional[str] = None) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key or settings.secret_key, salt=action)


def create_nonce(action: str, secret_key: Optional[str] = None) -> str:
    return _serializer(action, secret_key).dumps({"action": action})


def verify_nonce(
    nonce: Optional[str],
    action: str,
    secret_key: Optional[str] = None,
    max_age: Optional[int] = None,
) -> bool:
    """Check signature and age. Malformed, forged or expired nonces fail."""
    if not nonce:
        return False

    max_age = settings.nonce_max_age if max_age is None else max_age
    try:
        data = _serializer(action, secret_key).loads(nonce, max_age=max_age)
    except BadData:
        # BadSignature, SignatureExpired and undecodable payloads
        return False

    return isinstance(data, dict) and data.get("action") == action
