from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.core.config import settings


# ─── JWT tokens ────────────────────────────────────────
# Tokens are issued by the auth service; this API only needs to verify them.
# create_access_token is kept for local tooling and tests.
def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.api_secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.api_secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
