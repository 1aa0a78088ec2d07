from __future__ import annotations
from typing import Dict, List, Tuple

OVERALL_BIZ_TYPE = "车险整体"

CANONICAL_BUSINESS_TYPES: Tuple[str, ...] = (
    "10吨以上-普货",
    "10吨以上-牵引",
    "2-9吨营业货车",
    "2吨以下营业货车",
    "9-10吨营业货车",
    "出租车",
    "非营业货车旧车",
    "非营业货车新车",
    "非营业客车旧车非过户",
    "非营业客车旧车过户车",
    "非营业客车新车",
    "摩托车",
    "其他",
    "特种车",
    "网约车",
    "自卸",
)

CANONICAL_THIRD_LEVEL_ORGANIZATIONS: Tuple[str, ...] = (
    "本部", "达州", "德阳", "高新", "乐山", "泸州", "青羊",
    "天府", "武侯", "新都", "宜宾", "资阳", "自贡",
)

CANONICAL_CUSTOMER_CATEGORIES: Tuple[str, ...] = (
    "挂车",
    "摩托车",
    "特种车",
    "营业公路客运",
    "营业出租租赁",
    "营业城市公交",
    "营业货车",
    "非营业个人客车",
    "非营业企业客车",
    "非营业机关客车",
    "非营业货车",
)

CANONICAL_INSURANCE_TYPES: Tuple[str, ...] = ("商业险", "交强险")

# Annual sub-business targets (万 yuan) of the yearly baseline; 车险整体 is their sum.
BASELINE_SUB_BUSINESS_TARGETS: Tuple[Tuple[str, float], ...] = (
    ("10吨以上-普货", 450),
    ("10吨以上-牵引", 2100),
    ("1吨以上非营业货车", 1000),
    ("1吨以下非营业货车", 1600),
    ("2-9吨营业货车", 600),
    ("2吨以下营业货车", 1500),
    ("9-10吨营业货车", 250),
    ("出租车", 100),
    ("非营业客车旧车非过户", 27000),
    ("非营业客车旧车过户车", 4000),
    ("非营业客车新车", 1400),
    ("摩托车", 1700),
    ("其他", 100),
    ("特种车", 100),
    ("网约车", 300),
    ("自卸", 900),
)


def baseline_targets() -> Tuple[Tuple[str, float], ...]:
    overall = sum(v for _, v in BASELINE_SUB_BUSINESS_TARGETS)
    return ((OVERALL_BIZ_TYPE, overall),) + BASELINE_SUB_BUSINESS_TARGETS


def filter_options() -> Dict[str, List[str]]:
    """Selectable values per filter field."""
    return {
        "business_types": list(CANONICAL_BUSINESS_TYPES),
        "organizations": list(CANONICAL_THIRD_LEVEL_ORGANIZATIONS),
        "customer_categories": list(CANONICAL_CUSTOMER_CATEGORIES),
        "insurance_types": list(CANONICAL_INSURANCE_TYPES),
    }


def known_business_types() -> Tuple[str, ...]:
    seen = [OVERALL_BIZ_TYPE]
    for name in CANONICAL_BUSINESS_TYPES + tuple(n for n, _ in BASELINE_SUB_BUSINESS_TARGETS):
        if name not in seen:
            seen.append(name)
    return tuple(seen)
