"""
Admin console sessions backed by the remote admin login endpoint.
"""
import secrets
import logging
from typing import Optional

from storefront.api_client import StorefrontApiClient
from storefront.config import Config
from storefront.exceptions import AdminAuthError, AuthenticationError, NotFoundError
from storefront.models import AdminLoginResponse
from storefront.storage import CartStorage

logger = logging.getLogger(__name__)


class AdminAuthService:
    """Issues and checks admin session tokens"""

    def __init__(self, storage: CartStorage, api: StorefrontApiClient):
        self.storage = storage
        self.api = api

    def _session_key(self, token: str) -> str:
        return f"admin_session:{token}"

    def login(self, username: str, password: str) -> AdminLoginResponse:
        try:
            data = self.api.admin_login(username, password)
        except AuthenticationError:
            raise AdminAuthError("Invalid credentials. Please check your ID and password.")
        except NotFoundError:
            raise AdminAuthError("Admin ID not found. Please check your ID.")

        admin_id = data.get("admin_id")
        if not admin_id:
            raise AdminAuthError(data.get("message") or "Authentication failed. Please try again.")

        token = secrets.token_urlsafe(32)
        self.storage.set(self._session_key(token), str(admin_id), ex=Config.ADMIN_SESSION_TTL_SECONDS)
        logger.info(f"Admin {admin_id} logged in")
        return AdminLoginResponse(token=token, admin_id=str(admin_id))

    def get_admin_id(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        return self.storage.get(self._session_key(token))

    def is_logged_in(self, token: Optional[str]) -> bool:
        return self.get_admin_id(token) is not None

    def require_admin(self, token: Optional[str]) -> str:
        admin_id = self.get_admin_id(token)
        if admin_id is None:
            raise AdminAuthError()
        return admin_id

    def logout(self, token: Optional[str]) -> None:
        if token:
            self.storage.delete(self._session_key(token))
