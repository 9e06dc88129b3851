# Import models so that SQLAlchemy metadata includes them on app startup
from .user import User  # noqa: F401
from .farm import Farm  # noqa: F401
from .product import Product  # noqa: F401
from .farm_product import FarmProduct  # noqa: F401
from .event import Event, EventParticipant  # noqa: F401
from .event_product import EventProduct  # noqa: F401
from .order import Order  # noqa: F401
from .order_item import OrderItem  # noqa: F401
from .order_history import OrderHistory  # noqa: F401
from .review import Review  # noqa: F401
from .offer import Offer  # noqa: F401
from .payment import Payment  # noqa: F401
