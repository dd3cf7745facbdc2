import secrets

from fastapi import Header, HTTPException

from .config import settings


async def require_api_key(x_api_key: str = Header(default="", alias="X-API-Key")):
    # An unset key locks the API instead of opening it
    expected = settings.api_key
    if not expected or not secrets.compare_digest(x_api_key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="invalid or missing X-API-Key")
