"""
Seed data for order categories.
"""

CATEGORIES = [
    {"name": "Groceries", "slug": "groceries"},
    {"name": "Electronics", "slug": "electronics"},
    {"name": "Fashion", "slug": "fashion"},
    {"name": "Pharmacy", "slug": "pharmacy"},
    {"name": "Home & Garden", "slug": "home-garden"},
    {"name": "Restaurant Pickup", "slug": "restaurant-pickup"},
]
