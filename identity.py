import time
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings
from errors import AuthenticationError


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.token_secret, salt="ledger-access")


def issue_token(user_id: int, max_age_hours: Optional[int] = None) -> str:
    if max_age_hours is None:
        max_age_hours = get_settings().token_max_age_hours
    timestamp = int(time.time())
    expiry = timestamp + (max_age_hours * 3600)
    return _serializer().dumps({"u": user_id, "exp": expiry})


def resolve_user_id(token: Optional[str]) -> int:
    if not token:
        raise AuthenticationError("Missing access token")
    max_age = get_settings().token_max_age_hours * 3600
    try:
        data = _serializer().loads(token, max_age=max_age)
    except BadSignature as exc:
        raise AuthenticationError("Invalid access token") from exc

    user_id = data.get("u") if isinstance(data, dict) else None
    if not isinstance(user_id, int):
        raise AuthenticationError("Invalid access token")
    if int(time.time()) > data.get("exp", 0):
        raise AuthenticationError("Access token expired")
    return user_id
