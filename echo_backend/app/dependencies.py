from fastapi import HTTPException, Request, status

from .config import get_settings


def verify_real_key(request: Request) -> None:
    """
    Dependency that ensures requests carry the configured real key.

    Does nothing when ECHO_REAL_KEY is not set.
    """
    expected = get_settings().ECHO_REAL_KEY
    if not expected:
        return
    if request.headers.get("X-APP_KEY") != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid real key")
