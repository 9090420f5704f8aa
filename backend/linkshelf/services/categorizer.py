"""链接自动分类"""
from enum import Enum
from typing import List, NamedTuple, Tuple


class Category(str, Enum):
    """链接分类（封闭枚举）"""
    VIDEO = "Video"
    RECIPE = "Recipe"
    ARTICLE = "Article"
    SHOPPING = "Shopping"
    SOCIAL = "Social"
    GENERAL = "General"


class CategoryRule(NamedTuple):
    category: Category
    url_patterns: Tuple[str, ...]
    site_name_patterns: Tuple[str, ...] = ()


# 顺序即优先级，先命中者胜出
CATEGORY_RULES: List[CategoryRule] = [
    CategoryRule(Category.VIDEO, ("youtube.com", "youtu.be", "vimeo.com", "twitch.tv")),
    CategoryRule(
        Category.RECIPE,
        ("/recipe", "allrecipes.com", "food.com", "epicurious.com"),
        ("recipe",),
    ),
    CategoryRule(
        Category.ARTICLE,
        ("medium.com", "dev.to", "hashnode.com", "substack.com", "/blog/", "/article/"),
        ("blog",),
    ),
    CategoryRule(Category.SHOPPING, ("amazon.com", "ebay.com", "etsy.com", "shopify.com")),
    CategoryRule(
        Category.SOCIAL,
        ("twitter.com", "x.com", "facebook.com", "instagram.com", "linkedin.com"),
    ),
]

CATEGORY_VALUES = [c.value for c in Category]


def categorize(url: str, site_name: str = "") -> Category:
    """根据 URL 和站点名返回分类，未命中任何规则时返回 General"""
    lower_url = (url or "").lower()
    lower_site = (site_name or "").lower()

    for rule in CATEGORY_RULES:
        if any(p in lower_url for p in rule.url_patterns):
            return rule.category
        if any(p in lower_site for p in rule.site_name_patterns):
            return rule.category

    return Category.GENERAL
