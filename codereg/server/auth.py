"""
Caller identity for the HTTP edge.

The registry core trusts a pre-validated caller identity. Over HTTP that
identity comes from a signed bearer token:
- HS256 JWT with claims {address, exp}, signed with the configured secret
- Sent as 'Authorization: Bearer <token>' (or the codereg_token cookie)
- With auth disabled every caller is the identity 'anonymous'
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from sdk.logging import getLogger

COOKIE_NAME = 'codereg_token'
ANONYMOUS = 'anonymous'


class AuthManager:
    """
    Issues and validates identity tokens.

    Config keys: enabled, secret, tokenExpirySeconds
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.log = getLogger()

        self.enabled = config.get('enabled', False)
        self.secret = config.get('secret', 'dev-secret-change-in-production')
        self.tokenExpiry = config.get('tokenExpirySeconds', 86400)  # 24 hours default

        self.log.info(f"[Auth] Initialized: enabled={self.enabled}")

    def issueToken(self, address: str, expirySeconds: Optional[int] = None) -> str:
        """Sign a token asserting the caller is address"""
        expiresAt = datetime.now(timezone.utc) + timedelta(
            seconds=self.tokenExpiry if expirySeconds is None else expirySeconds)

        payload = {
            'address': address,
            'exp': expiresAt
        }
        return jwt.encode(payload, self.secret, algorithm='HS256')

    def validateToken(self, token: Optional[str]) -> Optional[str]:
        """
        Verified caller address, or None if the token is missing or invalid.
        """
        if not self.enabled:
            return ANONYMOUS

        if not token:
            return None

        try:
            payload = jwt.decode(token, self.secret, algorithms=['HS256'])
        except jwt.ExpiredSignatureError:
            self.log.warning("[Auth] Token expired")
            return None
        except jwt.InvalidTokenError as e:
            self.log.warning(f"[Auth] Invalid token: {e}")
            return None

        address = payload.get('address')
        if not isinstance(address, str) or not address:
            self.log.warning("[Auth] Token has no address claim")
            return None
        return address

    def callerFromHeaders(self, headers, cookies) -> Optional[str]:
        """Extract and validate the caller from a bearer header or cookie"""
        token = None
        authorization = headers.get('Authorization', '')
        if authorization.startswith('Bearer '):
            token = authorization[len('Bearer '):].strip()
        elif COOKIE_NAME in cookies:
            token = cookies.get(COOKIE_NAME)
        return self.validateToken(token)
