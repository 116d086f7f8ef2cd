"""Pytest configuration and fixtures"""
import os
import pytest
from decimal import Decimal
from typing import List

# Set test environment variables before the app reads its config
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("API_BASE_URL", "https://api.test/dev")

from storefront.models import CartLineDraft, CustomizationDetail, StockAdvisory
from storefront.storage import MemoryStorage


@pytest.fixture
def storage():
    """Fresh in-memory storage"""
    return MemoryStorage()


@pytest.fixture
def advisories() -> List[StockAdvisory]:
    """List that collects advisories sent to the notifier"""
    return []


@pytest.fixture
def notify(advisories):
    """Notifier callback that records advisories"""
    return advisories.append


@pytest.fixture
def red_wings():
    return [
        CustomizationDetail(part_id="wings", part_name="Wings", color="#FF0000", price=Decimal("2.50")),
        CustomizationDetail(part_id="eyes", part_name="Eyes", color="#00ff00", price=Decimal("1.00")),
    ]


@pytest.fixture
def blue_wings():
    return [
        CustomizationDetail(part_id="wings", part_name="Wings", color="#0000ff", price=Decimal("2.50")),
    ]


@pytest.fixture
def make_draft():
    """Factory for cart line drafts"""
    def _make(
        product_id="prod-1",
        quantity=1,
        stock_ceiling=5,
        customizations=None,
        unit_price="10.00",
        customization_price="0",
        name="Dragon Figurine"
    ):
        return CartLineDraft(
            product_id=product_id,
            name=name,
            quantity=quantity,
            unit_price=Decimal(unit_price),
            customization_price=Decimal(customization_price),
            stock_ceiling=stock_ceiling,
            is_customized=customizations is not None,
            customizations=customizations or [],
        )
    return _make


@pytest.fixture
def sample_product():
    """Sample product data as served by the remote API"""
    return {
        "product_id": "prod-1",
        "name": "Dragon Figurine",
        "description": "Articulated dragon",
        "price": 25.0,
        "quantity": 5,
        "model_url": "https://assets.test/models/dragon.glb",
        "category": "fantasy"
    }
