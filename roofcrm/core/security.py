from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

from roofcrm.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a bearer token. The "sub" claim must carry the user id as a string.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    # Raises jose.JWTError on bad signature or expiry
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
