"""
Bundled catalog used when the remote database cannot be reached.
"""

_IMG = "https://images.unsplash.com/{}?auto=format&fit=crop&w=500&q=80"

CATEGORIES = ["All", "Toys", "Home Decor", "Gifts"]

PRODUCTS = [
    {
        "id": 1,
        "name": "Sunshine Positivity Bear",
        "price": 24.99,
        "category": "Toys",
        "image": _IMG.format("photo-1559827260-dc66d52bef19"),
        "images": [
            _IMG.format("photo-1559827260-dc66d52bef19"),
            _IMG.format("photo-1563291074-2bf8677ac0e5"),
        ],
        "description": "A cuddly teddy bear that radiates positive energy and brings smiles to anyone's day.",
        "long_description": "Made with premium soft materials and an embroidered smile that never fades.",
        "stock": 40,
        "rating": 4.8,
        "review_count": 127,
    },
    {
        "id": 2,
        "name": "Crystal Meditation Pyramid",
        "price": 45.00,
        "category": "Home Decor",
        "image": _IMG.format("photo-1518709268805-4e9042af2176"),
        "description": "Beautiful clear quartz pyramid that enhances meditation and brings positive energy.",
        "stock": 12,
        "rating": 4.9,
        "review_count": 89,
    },
    {
        "id": 3,
        "name": "Rainbow Smile Stress Ball",
        "price": 12.99,
        "category": "Toys",
        "image": _IMG.format("photo-1511405946472-a37e3b5cdb45"),
        "description": "Colorful stress ball with a permanent smile that helps squeeze away stress.",
        "stock": 150,
        "rating": 4.7,
        "review_count": 203,
    },
    {
        "id": 4,
        "name": "Botanical Happiness Planter",
        "price": 28.50,
        "category": "Home Decor",
        "image": _IMG.format("photo-1485955900006-10f4d324d411"),
        "description": "Charming ceramic planter with inspirational quotes that brings life to your home.",
        "stock": 25,
        "rating": 4.6,
        "review_count": 156,
    },
    {
        "id": 5,
        "name": "Gratitude Journal Set",
        "price": 19.99,
        "category": "Gifts",
        "image": _IMG.format("photo-1544716278-ca5e3f4abd8c"),
        "description": "Beautiful journal set with prompts for daily gratitude practice.",
        "stock": 60,
        "rating": 4.9,
        "review_count": 312,
    },
    {
        "id": 6,
        "name": "Zen Garden Desktop Set",
        "price": 35.00,
        "category": "Home Decor",
        "image": _IMG.format("photo-1598300042247-d088f8ab3a91"),
        "description": "Miniature zen garden with rake and stones for mindful moments.",
        "stock": 18,
        "rating": 4.8,
        "review_count": 98,
    },
    {
        "id": 7,
        "name": "Happy Thoughts Mug",
        "price": 16.99,
        "category": "Gifts",
        "image": _IMG.format("photo-1514228742587-6b1558fcca3d"),
        "description": "Color-changing mug that reveals positive messages with hot beverages.",
        "stock": 80,
        "rating": 4.7,
        "review_count": 245,
    },
    {
        "id": 8,
        "name": "Succulent Joy Garden Kit",
        "price": 29.99,
        "category": "Gifts",
        "image": _IMG.format("photo-1459411552884-841db9b3cc2a"),
        "description": "Complete kit with mini succulents, pots, and care instructions.",
        "stock": 0,
        "rating": 4.8,
        "review_count": 178,
    },
]

VARIANTS = [
    {"id": 101, "product_id": 1, "sku": "BEAR-RED-S", "attributes": {"Color": "Red", "Size": "S"}, "stock": 10},
    {"id": 102, "product_id": 1, "sku": "BEAR-RED-M", "attributes": {"Color": "Red", "Size": "M"},
     "price": 29.99, "stock": 4},
    {"id": 103, "product_id": 1, "sku": "BEAR-BLUE-S", "attributes": {"Color": "Blue", "Size": "S"}, "stock": 0},
    {"id": 104, "product_id": 1, "sku": "BEAR-BLUE-M", "attributes": {"Color": "Blue", "Size": "M"},
     "price": 29.99, "stock": 6, "active": False},
    {"id": 701, "product_id": 7, "sku": "MUG-WHITE", "attributes": {"Color": "White"}, "stock": 50},
    {"id": 702, "product_id": 7, "sku": "MUG-BLACK", "attributes": {"Color": "Black"}, "stock": 30,
     "image": _IMG.format("photo-1572119865084-43c285814d63")},
]

REVIEWS = {
    1: [
        {"id": 1, "name": "Sarah M.", "rating": 5, "comment": "My daughter sleeps with it every night.", "date": "2024-08-15"},
        {"id": 2, "name": "Mike R.", "rating": 5, "comment": "Great quality and super soft.", "date": "2024-08-10"},
    ],
    2: [
        {"id": 1, "name": "David K.", "rating": 5, "comment": "Amazing clarity, I use it every day.", "date": "2024-08-12"},
    ],
    3: [
        {"id": 1, "name": "Jenny C.", "rating": 5, "comment": "A lifesaver during busy work days!", "date": "2024-08-14"},
    ],
}
