class Role:
    CUSTOMER = "CUSTOMER"
    FARMER = "FARMER"
    ADMIN = "ADMIN"


class OrderType:
    STANDARD = "STANDARD"
    PREORDER = "PREORDER"


class OrderStatus:
    PENDING = "PENDING"
    ONWAY = "ONWAY"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class OrderItemStatus:
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"


class PaymentMethod:
    CARD = "CARD"
    CASH = "CASH"


class HistoryAction:
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_CANCELED = "ORDER_CANCELED"
    ITEM_CANCELED = "ITEM_CANCELED"
    ORDER_UPDATED = "ORDER_UPDATED"


class PaymentStatus:
    INITIALIZED = "initialized"
    SUCCESS = "success"
    FAILED = "failed"
