"""Pytest configuration and fixtures"""
import os

import httpx
import pytest

# Set test environment variables
os.environ.setdefault("STOREFRONT_STORAGE", "memory")
os.environ.setdefault("STOREFRONT_API_URL", "http://storefront.test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from storefront.events import EventHub  # noqa: E402
from storefront.storage import MemoryStorage  # noqa: E402


@pytest.fixture
def storage():
    """Empty in-memory storage"""
    return MemoryStorage()


@pytest.fixture
def events():
    """Event hub"""
    return EventHub()


@pytest.fixture
def recorded_events(events):
    """List of (event, payload) pairs emitted on the hub"""
    received = []
    events.subscribe(lambda event, data: received.append((event, data)))
    return received


@pytest.fixture
def sample_product():
    """Sample product as the catalog hands it to the cart"""
    return {
        "id": "ball-001",
        "name": "Match Football",
        "price": 55000,
        "image": "/img/ball.png",
        "category": "football",
    }


@pytest.fixture
def sample_shipping():
    """Valid shipping form input"""
    return {
        "full_name": "Nimal Perera",
        "address": "12 Galle Road, Matara",
        "phone_number": "077-123-4567",
    }


@pytest.fixture
def sample_order_data(sample_shipping):
    """Stored order in its persisted camelCase shape"""
    return {
        "id": "GZ-123456-001",
        "createdAt": "2025-01-01T10:00:00Z",
        "items": [
            {"id": "ball-001", "name": "Match Football", "price": "1000", "quantity": 1,
             "image": "", "category": "football"},
        ],
        "subtotal": "1000",
        "transportFee": "800",
        "finalTotal": "1800",
        "shipping": {
            "fullName": sample_shipping["full_name"],
            "address": sample_shipping["address"],
            "phoneNumber": sample_shipping["phone_number"],
        },
        "paymentMethod": {"kind": "cash_on_delivery", "transportZone": "out_southern"},
        "status": "completed",
    }


@pytest.fixture
def mock_transport_factory():
    """Build an httpx.MockTransport that records requests"""
    def factory(handler):
        requests = []

        def recorder(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        transport = httpx.MockTransport(recorder)
        transport.requests = requests
        return transport

    return factory
