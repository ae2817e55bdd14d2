"""
Shared pytest fixtures for the SalesFlow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - messenger: RecordingMessenger capturing every send
    - clock: FixedClock pinned to 2025-01-01 10:00 Asia/Dhaka
    - services: fresh service graph wired to messenger + clock, installed on the app
    - kushtia_map: Location Map seeded with the Kushtia / Jessore rows
    - chain_staff: one ACL employee per routing role anchored on Kushtia-01
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from salesflow import create_app
from salesflow.core.exceptions import DeliveryError
from salesflow.integrations.messenger_gateway import GatewayResult
from salesflow.models import db as _db
from salesflow.models.records import LocationNode
from salesflow.services import EXTENSION_KEY, build_services

DHAKA = ZoneInfo("Asia/Dhaka")


class RecordingMessenger:
    """Messenger double: records (address, text); fails for addresses in ``fail_for``."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail_for: set[str] = set()

    def send(self, address, text):
        if address in self.fail_for:
            raise DeliveryError(address, "simulated provider failure")
        self.sent.append((address, text))
        return GatewayResult(True, 200, {"success": True}, 0)

    @property
    def addresses(self) -> list[str]:
        return [address for address, _ in self.sent]

    def clear(self):
        self.sent.clear()


class FixedClock:
    """Callable clock; ``advance`` moves it forward."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Service fixtures ─────────────────────────────────────────────────────


@pytest.fixture()
def messenger():
    return RecordingMessenger()


@pytest.fixture()
def clock():
    return FixedClock(datetime(2025, 1, 1, 10, 0, tzinfo=DHAKA))


@pytest.fixture()
def services(app, messenger, clock):
    """Fresh service graph for this test, also served by the blueprints."""
    original = app.extensions[EXTENSION_KEY]
    graph = build_services(messenger, clock=clock)
    app.extensions[EXTENSION_KEY] = graph
    yield graph
    app.extensions[EXTENSION_KEY] = original


# ── Convenience fixtures ─────────────────────────────────────────────────


KUSHTIA_01 = LocationNode(
    zone="Khulna", district="Jhenaidah", area="Kushtia", territory="Kushtia-01",
    bazaar="Kushtia Bazar", upazilla="Kushtia Sadar", bd_territory="BD1",
    cro_territory="CRO1", business_unit="ACL", status="Active",
)
JESSORE_01 = LocationNode(
    zone="Khulna", district="Jessore", area="Jessore", territory="Jessore-01",
    bazaar="Boro Bazar", upazilla="Jessore Sadar", bd_territory="BD2",
    cro_territory="CRO2", business_unit="AIL", status="Active",
)


@pytest.fixture()
def kushtia_map(services):
    """Location Map with Kushtia-01 (ACL) and Jessore-01 (AIL)."""
    services.resolver.add_node(KUSHTIA_01)
    services.resolver.add_node(JESSORE_01)
    return services.resolver


@pytest.fixture()
def chain_staff(services, kushtia_map):
    """One active ACL employee per chain role, all routable from Kushtia-01.

    Returns a dict role → Employee.
    """
    directory = services.directory
    staff = {
        "SR": directory.add_employee({
            "name": "Rahim", "role": "SR", "email": "sr1@example.com",
            "whatsapp_number": "01711000001", "territory": "Kushtia-01", "business_unit": "ACL",
        }),
        "ASM": directory.add_employee({
            "name": "Karim", "role": "ASM", "email": "asm1@example.com",
            "whatsapp_number": "01711000002", "area": "Kushtia", "business_unit": "ACL",
        }),
        "ZSM": directory.add_employee({
            "name": "Nasir", "role": "ZSM", "email": "zsm1@example.com",
            "whatsapp_number": "01711000003", "district": "Jhenaidah", "business_unit": "ACL",
        }),
        "BDO": directory.add_employee({
            "name": "Farzana", "role": "BDO", "email": "bdo1@example.com",
            "whatsapp_number": "01711000004", "bd_territory": "BD1", "business_unit": "ACL",
        }),
        "CRO": directory.add_employee({
            "name": "Sohel", "role": "CRO", "email": "cro1@example.com",
            "whatsapp_number": "01711000005", "cro_territory": "CRO1", "business_unit": "ACL",
        }),
    }
    return staff
