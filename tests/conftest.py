from __future__ import annotations

from decimal import Decimal

import pytest

from storefront.core.config import get_settings
from storefront.schemas import MenuItem
from storefront.services.checkout import OrderSubmissionWorkflow
from storefront.services.invoice import RecordingLauncher
from storefront.services.orders.mock import MockOrderRepository
from storefront.services.session import CustomerSession
from storefront.services.storage import MemoryStorage


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


def make_item(item_id: str, name: str, price: int, **kwargs) -> MenuItem:
    return MenuItem(
        id=item_id,
        name=name,
        price=Decimal(price),
        category_id=kwargs.pop("category_id", "cat-test"),
        **kwargs,
    )


@pytest.fixture()
def cheeseburger() -> MenuItem:
    return make_item("prod-cheeseburger", "Cheeseburger", 45000, description="Beef patty")


@pytest.fixture()
def iced_tea() -> MenuItem:
    return make_item("prod-iced-tea", "Iced Tea", 15000)


@pytest.fixture()
def session() -> CustomerSession:
    return CustomerSession("test-session", MemoryStorage())


@pytest.fixture()
def repository() -> MockOrderRepository:
    return MockOrderRepository()


@pytest.fixture()
def launcher() -> RecordingLauncher:
    return RecordingLauncher()


@pytest.fixture()
def workflow(repository: MockOrderRepository, launcher: RecordingLauncher) -> OrderSubmissionWorkflow:
    return OrderSubmissionWorkflow(repository, launcher=launcher, settings=get_settings())
