"""
HTTP client for the remote storefront REST API (products, orders, users, admin).
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from storefront.config import Config
from storefront.exceptions import (
    ApiError,
    ApiUnavailableError,
    AuthenticationError,
    NotFoundError
)
from storefront.models import (
    Order,
    OrderStatus,
    Product,
    ProductCreateRequest,
    ProductUpdateRequest,
    ShippingInfo,
    User,
    UserProfile,
    UserUpdateRequest
)

logger = logging.getLogger(__name__)


class StorefrontApiClient:
    """Thin wrapper around the remote API; every call raises ApiError on failure"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        admin_login_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: Optional[float] = None
    ):
        self.base_url = (base_url or Config.API_BASE_URL).rstrip("/")
        self.admin_login_url = admin_login_url or Config.ADMIN_LOGIN_URL
        self._http_client = httpx.Client(
            base_url=self.base_url,
            transport=transport,
            timeout=timeout or Config.API_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self._http_client.close()

    @staticmethod
    def _auth(token: Optional[str]) -> Dict[str, str]:
        if not token:
            raise AuthenticationError("User authentication required")
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or str(body)
        return str(body)

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = self._http_client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Storefront API {method} {url} failed: {e}")
            raise ApiUnavailableError(f"Storefront API unreachable: {e}")

        if response.status_code == 401:
            raise AuthenticationError(self._error_message(response))
        if response.status_code == 404:
            raise NotFoundError(self._error_message(response))
        if response.is_error:
            message = self._error_message(response)
            logger.error(f"Storefront API {method} {url} returned {response.status_code}: {message}")
            raise ApiError(f"Error: {response.status_code} - {message}", status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    # Products

    def list_products(self) -> List[Product]:
        data = self._request("GET", "/products")
        if not isinstance(data, list):
            return []
        return [Product.model_validate(item) for item in data]

    def get_product(self, product_id: str) -> Product:
        return Product.model_validate(self._request("GET", f"/products/{product_id}"))

    def create_product(self, product: ProductCreateRequest) -> Product:
        data = self._request("POST", "/products", json=product.model_dump(mode="json"))
        return Product.model_validate(data)

    def update_product(self, product_id: str, product: ProductUpdateRequest) -> Product:
        data = self._request("PUT", f"/products/{product_id}", json=product.model_dump(mode="json"))
        return Product.model_validate(data)

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/products/{product_id}") or {}

    def update_product_stock(self, product_id: str, quantity_change: int) -> Product:
        data = self._request(
            "PUT", f"/products/{product_id}/stock", json={"quantity_change": quantity_change}
        )
        return Product.model_validate(data)

    # Orders

    def create_order(self, payload: Dict[str, Any], token: Optional[str]) -> Dict[str, Any]:
        return self._request("POST", "/orders", json=payload, headers=self._auth(token)) or {}

    def list_user_orders(self, token: Optional[str]) -> List[Order]:
        data = self._request("GET", "/users/orders", headers=self._auth(token))
        if not isinstance(data, list):
            return []
        return [Order.model_validate(item) for item in data]

    def list_all_orders(self) -> List[Order]:
        data = self._request("GET", "/admin/orders")
        if not isinstance(data, list):
            return []
        return [Order.model_validate(item) for item in data]

    def update_order_status(self, order_id: str, status: OrderStatus) -> Dict[str, Any]:
        return self._request("PUT", f"/admin/orders/{order_id}/status", json={"status": status}) or {}

    def delete_order(self, order_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/admin/orders/{order_id}") or {}

    # Users

    def get_profile(self, token: Optional[str]) -> UserProfile:
        data = self._request("GET", "/users/profile", headers=self._auth(token))
        return UserProfile.model_validate(data)

    def update_profile(self, token: Optional[str], shipping_info: ShippingInfo) -> UserProfile:
        data = self._request(
            "PUT",
            "/users/profile",
            json=shipping_info.model_dump(exclude_none=True),
            headers=self._auth(token),
        )
        return UserProfile.model_validate(data)

    # Admin

    def list_users(self) -> List[User]:
        data = self._request("GET", "/admin/users")
        if not isinstance(data, list):
            return []
        return [User.model_validate(item) for item in data]

    def get_user(self, user_id: str) -> User:
        return User.model_validate(self._request("GET", f"/admin/users/{user_id}"))

    def update_user(self, user_id: str, update: UserUpdateRequest) -> User:
        data = self._request(
            "PUT", f"/admin/users/{user_id}", json=update.model_dump(exclude_none=True)
        )
        return User.model_validate(data)

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/admin/users/{user_id}") or {}

    def admin_login(self, username: str, password: str) -> Dict[str, Any]:
        """Authenticate an admin; returns the API body containing admin_id"""
        return self._request(
            "POST", self.admin_login_url, json={"username": username, "password": password}
        ) or {}


# Global API client instance
_api_client: Optional[StorefrontApiClient] = None


def get_api_client() -> StorefrontApiClient:
    """Get or create API client instance (singleton)"""
    global _api_client
    if _api_client is None:
        _api_client = StorefrontApiClient()
    return _api_client


def close_api_client() -> None:
    """Close the shared HTTP client, if one was created"""
    global _api_client
    if _api_client is not None:
        _api_client.close()
        _api_client = None
