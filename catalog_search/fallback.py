"""Fixed sample catalog served when the primary store is unreachable."""
from __future__ import annotations

from datetime import datetime, timezone

from .catalog import InMemoryCatalogStore
from .models import CatalogItem


def _ts(day: int) -> datetime:
    return datetime(2024, 1, day, tzinfo=timezone.utc)


SAMPLE_PRODUCTS: tuple[CatalogItem, ...] = (
    CatalogItem(
        id="1",
        name="iPhone 15 Pro Max",
        description=(
            "Smartphone cao cấp từ Apple với chip A17 Pro, màn hình Super Retina XDR 6.7 inch "
            "và hệ thống camera chuyên nghiệp."
        ),
        price=34_990_000,
        stock_count=50,
        category_id="smartphone",
        category_name="Điện thoại",
        brand="Apple",
        avg_rating=4.8,
        units_sold=120,
        created_at=_ts(8),
    ),
    CatalogItem(
        id="2",
        name="Samsung Galaxy S24 Ultra",
        description=(
            "Flagship của Samsung với bút S-Pen tích hợp, màn hình Dynamic AMOLED 2X "
            "và khả năng zoom quang học 10x."
        ),
        price=31_990_000,
        stock_count=45,
        category_id="smartphone",
        category_name="Điện thoại",
        brand="Samsung",
        avg_rating=4.7,
        units_sold=95,
        created_at=_ts(7),
    ),
    CatalogItem(
        id="3",
        name="MacBook Pro 16 inch M3 Max",
        description=(
            "Laptop chuyên dụng cho sáng tạo nội dung với chip M3 Max, màn hình Liquid Retina XDR "
            "và thời lượng pin lên đến 22 giờ."
        ),
        price=75_990_000,
        stock_count=20,
        category_id="laptop",
        category_name="Laptop",
        brand="Apple",
        avg_rating=4.9,
        units_sold=40,
        created_at=_ts(6),
    ),
    CatalogItem(
        id="4",
        name="Dell XPS 15",
        description="Laptop cao cấp với màn hình OLED 4K, chip Intel Core i9 và card đồ họa NVIDIA RTX 4070.",
        price=52_990_000,
        stock_count=15,
        category_id="laptop",
        category_name="Laptop",
        brand="Dell",
        avg_rating=4.5,
        units_sold=30,
        created_at=_ts(5),
    ),
    CatalogItem(
        id="5",
        name="Xiaomi Redmi Note 13",
        description="Điện thoại giá rẻ với màn hình AMOLED 120Hz và pin 5000mAh.",
        price=4_690_000,
        stock_count=120,
        category_id="smartphone",
        category_name="Điện thoại",
        brand="Xiaomi",
        avg_rating=4.3,
        units_sold=310,
        created_at=_ts(4),
    ),
    CatalogItem(
        id="6",
        name="Tai nghe Sony WH-1000XM5",
        description="Tai nghe chống ồn chủ động, kết nối bluetooth, thời lượng pin 30 giờ.",
        price=7_490_000,
        stock_count=0,
        category_id="audio",
        category_name="Âm thanh",
        brand="Sony",
        avg_rating=4.6,
        units_sold=75,
        created_at=_ts(3),
    ),
    CatalogItem(
        id="7",
        name="Loa JBL Charge 5",
        description="Loa bluetooth chống nước IP67 với âm thanh mạnh mẽ.",
        price=3_290_000,
        stock_count=34,
        category_id="audio",
        category_name="Âm thanh",
        brand="JBL",
        avg_rating=4.4,
        units_sold=150,
        created_at=_ts(2),
    ),
    CatalogItem(
        id="8",
        name="Sạc nhanh Anker 65W",
        description="Củ sạc GaN nhỏ gọn hỗ trợ sạc nhanh cho điện thoại và laptop.",
        price=890_000,
        stock_count=3,
        category_id="accessory",
        category_name="Phụ kiện",
        brand="Anker",
        avg_rating=None,
        units_sold=None,
        created_at=_ts(1),
    ),
)


class FallbackCatalog(InMemoryCatalogStore):
    """Answers the primary store's query shape from :data:`SAMPLE_PRODUCTS`."""

    def __init__(self) -> None:
        super().__init__(SAMPLE_PRODUCTS)
