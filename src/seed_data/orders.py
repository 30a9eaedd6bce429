"""
Seed data for orders.
``tenant`` refers to a seeded tenant by email; None leaves the order unrouted.
"""

SHIPPING_ADDRESS = {
    "name": "Priya Venkatesh",
    "phone": "9876543210",
    "addressLine1": "22 Gandhi Nagar",
    "addressLine2": "Near Bus Stand",
    "city": "Tiruppur",
    "state": "Tamil Nadu",
    "pincode": "641604",
}

ORDERS = [
    {
        "customer_name": "Priya Venkatesh",
        "customer_email": "priya@example.com",
        "payment_method": "UPI",
        "items": [
            {"product_id": "FRAME-A4", "name": "Personalised Photo Frame", "price": "499.00", "quantity": 2, "size": "A4"},
        ],
        "items_price": "998.00",
        "shipping_price": "50.00",
        "discount_price": "48.00",
        "tenant": None,
    },
    {
        "customer_name": "Rahul Iyer",
        "customer_email": "rahul@example.com",
        "payment_method": "COD",
        "items": [
            {"product_id": "MUG-11OZ", "name": "Photo Mug", "price": "299.00", "quantity": 1, "gift_wrap": True},
            {"product_id": "CUSH-16", "name": "Printed Cushion", "price": "650.00", "quantity": 1},
        ],
        "items_price": "949.00",
        "gift_wrap_price": "30.00",
        "shipping_price": "40.00",
        "coupon_code": "WELCOME10",
        "coupon_discount": "19.00",
        "tenant": "meena@kovaicrafts.in",
    },
    {
        "customer_name": "Divya Shankar",
        "customer_email": None,
        "payment_method": "Card",
        "items": [
            {"product_id": "KEY-WOOD", "name": "Engraved Wooden Keychain", "price": "150.00", "quantity": 4},
        ],
        "items_price": "600.00",
        "packing_price": "20.00",
        "tenant": None,
    },
]
