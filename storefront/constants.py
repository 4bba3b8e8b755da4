# Раскладка коллекций в хранилище документов

USER_COLLECTION = "user"
CART_SUBCOLLECTION = "cart"
ORDERS_SUBCOLLECTION = "orders"
ADDRESS_SUBCOLLECTION = "address"
ORDERS_COLLECTION = "orders"
PRODUCT_COLLECTION = "Products"

CATEGORY_FIELD = "category"
PRICE_FIELD = "price"
OFFER_PERCENTAGE_FIELD = "offer_percentage"
CART_PRODUCT_ID_FIELD = "product.id"

SPECIAL_PRODUCT_CATEGORY = "Special Products"
BEST_DEALS_CATEGORY = "Best Deals"
BEST_PRODUCT_CATEGORY = "Best Products"

ALL_FIELDS_REQUIRED = "All fields are required"
MALFORMED_DOCUMENT = "Malformed document"


def user_path(uid: str, subcollection: str) -> str:
    return f"{USER_COLLECTION}/{uid}/{subcollection}"


def cart_path(uid: str) -> str:
    return user_path(uid, CART_SUBCOLLECTION)


def user_orders_path(uid: str) -> str:
    return user_path(uid, ORDERS_SUBCOLLECTION)


def address_path(uid: str) -> str:
    return user_path(uid, ADDRESS_SUBCOLLECTION)
