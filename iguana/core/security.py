import hashlib
import uuid
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from iguana.core.config import get_settings
from iguana.core.exceptions import BadRequestError

CHECKOUT_SESSION_PREFIX = "cs_"


def get_checkout_serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(
        settings.secret_key,
        salt="iguana-checkout",
        signer_kwargs={"key_derivation": "hmac", "digest_method": hashlib.sha256},
    )


def create_checkout_session_id(payload: dict[str, Any]) -> str:
    """Sign payload into an opaque session id; a nonce keeps ids unique per attempt."""
    serializer = get_checkout_serializer()
    return CHECKOUT_SESSION_PREFIX + serializer.dumps({**payload, "nonce": uuid.uuid4().hex})


def load_checkout_session_id(session_id: str) -> dict[str, Any]:
    settings = get_settings()
    if not session_id or not session_id.startswith(CHECKOUT_SESSION_PREFIX):
        raise BadRequestError("Invalid checkout session")
    serializer = get_checkout_serializer()
    try:
        return serializer.loads(
            session_id[len(CHECKOUT_SESSION_PREFIX):],
            max_age=settings.checkout_session_max_age,
        )
    except SignatureExpired as e:
        raise BadRequestError("Checkout session expired") from e
    except BadSignature as e:
        raise BadRequestError("Invalid checkout session") from e
