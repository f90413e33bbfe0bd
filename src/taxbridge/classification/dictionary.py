"""Static harmonized code and product category tables.

The code table lists one representative 10-digit line per heading; the
category table carries the keyword lists used for title classification and
the heading ranges (``"8471-8548"``) each category covers.  Iteration order of
both tables is significant: the classifier breaks ties by first occurrence.

Keywords are matched as lowercase substrings, so each list avoids short
English fragments that occur inside unrelated words.
"""

from __future__ import annotations

from typing import Dict, Tuple

from taxbridge.models import CategoryInfo, CodeInfo

DEFAULT_DUTY_RATE = 0.05


def _code(code: str, description: str, category: str, duty_rate: float) -> CodeInfo:
    return CodeInfo(
        code=code,
        description=description,
        category=category,
        chapter=code[:2],
        duty_rate=duty_rate,
    )


HS_CODE_TABLE: Tuple[CodeInfo, ...] = (
    # electronics
    _code("8517120000", "Mobile phones and smartphones", "electronics", 0.06),
    _code("8471300000", "Portable computers and laptops", "electronics", 0.06),
    _code("8528720000", "LCD monitors and television receivers", "electronics", 0.06),
    _code("8518300000", "Headphones and earphones", "electronics", 0.06),
    # clothing
    _code("6109100000", "Knitted cotton T-shirts", "clothing", 0.16),
    _code("6203420000", "Men's cotton trousers and jeans", "clothing", 0.16),
    _code("6204620000", "Women's cotton trousers", "clothing", 0.16),
    _code("6110200000", "Knitted cotton sweaters and pullovers", "clothing", 0.16),
    # accessories
    _code("4202220000", "Handbags with outer surface of sheeting or textile", "accessories", 0.08),
    _code("9102190000", "Wrist watches, battery powered", "accessories", 0.08),
    _code("7113110000", "Silver jewellery", "accessories", 0.08),
    # home
    _code("6302220000", "Printed bed linen of man-made fibres", "home", 0.04),
    _code("6911100000", "Porcelain tableware and kitchenware", "home", 0.04),
    _code("9403600000", "Wooden furniture", "home", 0.04),
    # beauty
    _code("3304990000", "Beauty and make-up preparations", "beauty", 0.02),
    _code("3305900000", "Hair care preparations", "beauty", 0.02),
    _code("3307900000", "Perfumery and toilet preparations", "beauty", 0.02),
    # sports
    _code("6403910000", "Sports footwear covering the ankle", "sports", 0.12),
    _code("9506620000", "Inflatable balls and fitness equipment", "sports", 0.12),
    _code("6211430000", "Track suits and sports garments", "sports", 0.12),
    # toys
    _code("9503000000", "Toys, puzzles and scale models", "toys", 0.00),
    _code("9504500000", "Video game consoles", "toys", 0.00),
    # books
    _code("4901990000", "Printed books and brochures", "books", 0.00),
)


PRODUCT_CATEGORIES: Tuple[CategoryInfo, ...] = (
    CategoryInfo(
        id="electronics",
        name="Electronics",
        code_ranges=["8471-8548", "9013-9033"],
        default_duty_rate=0.06,
        keywords=[
            "手机", "电脑", "耳机", "平板", "相机", "电视", "显示器", "音响", "充电器",
            "phone", "laptop", "computer", "earbuds", "tablet", "camera",
            "monitor", "speaker", "charger", "television",
        ],
    ),
    CategoryInfo(
        id="clothing",
        name="Clothing",
        code_ranges=["6101-6117", "6201-6217"],
        default_duty_rate=0.16,
        keywords=[
            "t恤", "衬衫", "裤子", "裙子", "外套", "毛衣", "内衣", "袜子", "牛仔裤",
            "t-shirt", "shirt", "trousers", "skirt", "jacket", "sweater",
            "jeans", "socks", "underwear", "hoodie",
        ],
    ),
    CategoryInfo(
        id="accessories",
        name="Accessories",
        code_ranges=["4202-4206", "7113-7118", "9101-9102"],
        default_duty_rate=0.08,
        keywords=[
            "包包", "手表", "首饰", "眼镜", "帽子", "围巾", "皮带", "钱包",
            "handbag", "watch", "jewelry", "jewellery", "necklace", "sunglasses",
            "beanie", "scarf", "wallet",
        ],
    ),
    CategoryInfo(
        id="home",
        name="Home",
        code_ranges=["6302-6310", "6911-6914", "9403-9406"],
        default_duty_rate=0.04,
        keywords=[
            "床上用品", "餐具", "家具", "装饰品", "厨具", "灯具", "收纳", "清洁用品",
            "bedding", "tableware", "furniture", "cookware", "lamp", "pillow",
            "curtain", "duvet",
        ],
    ),
    CategoryInfo(
        id="beauty",
        name="Beauty",
        code_ranges=["3304-3307", "3401-3407"],
        default_duty_rate=0.02,
        keywords=[
            "化妆品", "护肤品", "香水", "洗发水", "沐浴露", "面膜", "口红", "粉底",
            "cosmetic", "skincare", "perfume", "shampoo", "body wash",
            "lipstick", "mascara", "moisturizer",
        ],
    ),
    CategoryInfo(
        id="sports",
        name="Sports",
        code_ranges=["6403-6405", "9506-9507"],
        default_duty_rate=0.12,
        keywords=[
            "运动鞋", "健身器材", "运动服", "球类", "户外用品", "瑜伽用品",
            "sneakers", "running shoes", "fitness", "sportswear", "yoga",
            "dumbbell", "football", "basketball",
        ],
    ),
    CategoryInfo(
        id="toys",
        name="Toys",
        code_ranges=["9503-9505"],
        default_duty_rate=0.00,
        keywords=[
            "玩具", "游戏", "积木", "娃娃", "模型", "益智玩具", "电子游戏",
            "toy", "building blocks", "doll", "puzzle", "board game", "video game",
        ],
    ),
    CategoryInfo(
        id="books",
        name="Books",
        code_ranges=["4901-4906"],
        default_duty_rate=0.00,
        keywords=[
            "图书", "书籍", "杂志", "教材", "小说", "工具书", "电子书",
            "paperback", "hardcover", "magazine", "textbook", "novel",
        ],
    ),
)


CATEGORY_DUTY_RATES: Dict[str, float] = {
    category.id: category.default_duty_rate for category in PRODUCT_CATEGORIES
}
