from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from core.db import Base, get_db
from models.enums import Role
from models.event import Event, EventParticipant
from models.event_product import EventProduct
from models.farm import Farm
from models.farm_product import FarmProduct
from models.product import Product
from models.user import User
from services import email as email_service
from security import jwt as jwt_utils


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()

    def _get_db():
        try:
            yield session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    try:
        yield session
    finally:
        session.close()
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    sent = []

    def _fake_send(to_email: str, subject: str, body: str) -> None:
        sent.append({"to": to_email, "subject": subject, "body": body})

    monkeypatch.setattr(email_service, "send_email", _fake_send)
    return sent


@pytest.fixture()
def client(db):
    with TestClient(app) as c:
        yield c


def _make_user(db, email, name, role=Role.CUSTOMER, phone=None):
    user = User(email=email, name=name, role=role, phone=phone)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def customer(db):
    return _make_user(db, "buyer@example.com", "Jana Buyer", phone="+420111222333")


@pytest.fixture()
def other_customer(db):
    return _make_user(db, "other@example.com", "Petr Other")


@pytest.fixture()
def farmer(db):
    return _make_user(db, "farmer@example.com", "Karel Farmer", role=Role.FARMER)


@pytest.fixture()
def other_farmer(db):
    return _make_user(db, "farmer2@example.com", "Eva Grower", role=Role.FARMER)


@pytest.fixture()
def farm(db, farmer):
    farm = Farm(farmer_id=farmer.id, name="Green Acres", street="Field 1", city="Brno", postal_code="60200", country="CZ")
    db.add(farm)
    db.commit()
    db.refresh(farm)
    return farm


@pytest.fixture()
def product(db):
    product = Product(name="Honey", category="honey", description="Wildflower honey", base_price=Decimal("3.50"))
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture()
def listing(db, farm, product):
    listing = FarmProduct(farm_id=farm.id, product_id=product.id, price=Decimal("3.50"), stock=50, is_available=True)
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing


def _make_event(db, organizer, start, end, title="Harvest Market"):
    ev = Event(
        organizer_id=organizer.id,
        title=title,
        start_date=start,
        end_date=end,
        street="Square 5",
        city="Olomouc",
        postal_code="77900",
        country="CZ",
    )
    db.add(ev)
    db.commit()
    db.refresh(ev)
    return ev


@pytest.fixture()
def market_event(db, farmer):
    now = datetime.utcnow()
    ev = _make_event(db, farmer, now + timedelta(days=1), now + timedelta(days=2))
    db.add(EventParticipant(event_id=ev.id, user_id=farmer.id, stall_name="Stall 7"))
    db.commit()
    return ev


@pytest.fixture()
def past_event(db, farmer):
    now = datetime.utcnow()
    return _make_event(db, farmer, now - timedelta(days=3), now - timedelta(days=2), title="Spring Market")


@pytest.fixture()
def event_listing(db, market_event, farmer, product):
    ep = EventProduct(event_id=market_event.id, user_id=farmer.id, product_id=product.id, price=Decimal("3.50"), stock=20)
    db.add(ep)
    db.commit()
    db.refresh(ep)
    return ep


@pytest.fixture()
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {jwt_utils.create_access_token(str(user.id))}"}

    return _headers


@pytest.fixture()
def place_order(client):
    """Submit a standard checkout for one product and return the response."""

    def _place(product, buyer=None, email=None, quantity=2, unit_price=3.5):
        user_info = {
            "deliveryStreet": "Main 1",
            "deliveryCity": "Brno",
            "deliveryPostalCode": "60200",
            "deliveryCountry": "CZ",
            "paymentMethod": "CASH",
        }
        if buyer is not None:
            user_info["buyerId"] = buyer.id
        if email is not None:
            user_info["email"] = email
        cart = [
            {
                "productId": product.id,
                "quantity": quantity,
                "unitPrice": unit_price,
                "productName": product.name,
                "sellerName": "Karel Farmer",
            }
        ]
        return client.post("/api/checkout", json={"cartItems": cart, "userInfo": user_info})

    return _place
