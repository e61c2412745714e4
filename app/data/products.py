"""Bundled cruise catalog: used when the products table is empty or unreachable."""

STATIC_PRODUCTS: tuple[dict, ...] = (
    {
        "id": "explorer",
        "slug": "explorer-7n8d",
        "name": "Explorer",
        "name_ko": "익스플로러",
        "description": "An introductory package for first-time cruisers.",
        "description_ko": "크루즈의 매력을 처음 경험하는 분들을 위한 입문 패키지",
        "price": 2_990_000,
        "original_price": 3_490_000,
        "currency": "KRW",
        "category": "explorer",
        "nights": 7,
        "days": 8,
        "ship": "Ocean Explorer",
        "is_active": True,
        "is_featured": False,
    },
    {
        "id": "voyager",
        "slug": "voyager-10n11d",
        "name": "Voyager",
        "name_ko": "보이저",
        "description": "Premium service for a complete getaway.",
        "description_ko": "프리미엄 서비스와 함께하는 완벽한 휴식의 여정",
        "price": 5_490_000,
        "original_price": 6_290_000,
        "currency": "KRW",
        "category": "voyager",
        "nights": 10,
        "days": 11,
        "ship": "Ocean Voyager",
        "is_active": True,
        "is_featured": True,
    },
    {
        "id": "royal",
        "slug": "royal-14n15d",
        "name": "Royal",
        "name_ko": "로얄",
        "description": "The dream voyage, finished in top-tier luxury.",
        "description_ko": "최상급 럭셔리로 완성되는 꿈의 항해",
        "price": 12_900_000,
        "original_price": 14_900_000,
        "currency": "KRW",
        "category": "royal",
        "nights": 14,
        "days": 15,
        "ship": "Royal Majesty",
        "is_active": True,
        "is_featured": False,
    },
)


def find_static_product(product_id: str) -> dict | None:
    """Match by id first, then by slug."""
    for p in STATIC_PRODUCTS:
        if p["id"] == product_id or p["slug"] == product_id:
            return p
    return None
