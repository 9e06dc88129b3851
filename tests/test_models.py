import uuid
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from models.enums import OrderItemStatus, OrderStatus, OrderType, PaymentMethod, Role
from models.farm_product import FarmProduct
from models.order import Order
from models.order_item import OrderItem
from models.review import Review
from models.user import User


class TestUser:
    """Test cases for User model"""

    def test_default_role(self, db):
        """Users are customers unless stated otherwise"""
        user = User(email="new@example.com", name="New User")
        db.add(user)
        db.commit()
        db.refresh(user)

        assert user.role == Role.CUSTOMER
        assert isinstance(user.created_at, datetime)

    def test_email_is_unique(self, db, customer):
        db.add(User(email=customer.email, name="Duplicate"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


class TestOrder:
    """Test cases for Order and OrderItem models"""

    def test_defaults(self, db, customer):
        order = Order(buyer_id=customer.id)
        db.add(order)
        db.commit()
        db.refresh(order)

        assert uuid.UUID(order.order_number)
        assert order.order_type == OrderType.STANDARD
        assert order.status == OrderStatus.PENDING
        assert order.payment_method == PaymentMethod.CASH
        assert order.is_paid is False
        assert order.total_price == Decimal("0")

    def test_order_numbers_are_unique_per_order(self, db, customer):
        first, second = Order(buyer_id=customer.id), Order(buyer_id=customer.id)
        db.add_all([first, second])
        db.commit()
        assert first.order_number != second.order_number

    def test_contact_email_prefers_guest_address(self, db, customer):
        guest = Order(anonymous_email="guest@example.com")
        registered = Order(buyer_id=customer.id)
        db.add_all([guest, registered])
        db.commit()

        assert guest.contact_email == "guest@example.com"
        assert registered.contact_email == customer.email
        assert Order().contact_email is None

    def test_items_are_ordered_and_active_by_default(self, db, customer, product):
        order = Order(buyer_id=customer.id)
        db.add(order)
        db.flush()
        for name in ("First", "Second"):
            db.add(OrderItem(order_id=order.id, product_id=product.id, quantity=1, unit_price=Decimal("1.00"),
                             product_name=name, seller_name="K"))
        db.commit()
        db.refresh(order)

        assert [i.product_name for i in order.items] == ["First", "Second"]
        assert all(i.status == OrderItemStatus.ACTIVE and i.is_active for i in order.items)

    def test_product_removal_keeps_item_snapshot(self, db, customer, product):
        order = Order(buyer_id=customer.id)
        db.add(order)
        db.flush()
        item = OrderItem(order_id=order.id, product_id=product.id, quantity=1, unit_price=Decimal("3.50"),
                         product_name="Honey", seller_name="K")
        db.add(item)
        db.commit()

        db.delete(product)
        db.commit()
        db.refresh(item)

        assert item.product_id is None
        assert item.product_name == "Honey"


class TestEvent:
    def test_has_ended(self, market_event, past_event):
        assert market_event.has_ended() is False
        assert past_event.has_ended() is True
        assert market_event.has_ended(now=market_event.end_date) is True
        assert market_event.has_ended(now=market_event.end_date - timedelta(seconds=1)) is False


class TestConstraints:
    def test_listing_stock_cannot_go_negative(self, db, listing):
        listing.stock = -1
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_one_listing_per_farm_and_product(self, db, farm, product, listing):
        db.add(FarmProduct(farm_id=farm.id, product_id=product.id, price=Decimal("1.00"), stock=1))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_review_rating_range(self, db, customer, product):
        db.add(Review(user_id=customer.id, product_id=product.id, rating=0))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()
