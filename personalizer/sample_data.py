"""Bundled catalogue used by the standalone server: Kunming stores and content."""

from __future__ import annotations

from typing import Any

from personalizer.catalogue import (
    InMemoryContentRepository,
    InMemoryStoreRepository,
    content_from_dict,
)
from personalizer.models import ContentItem, ContentType, Store

_HOURS = "09:00-22:00"
_LATE_HOURS = "09:00-23:00"

STORES: list[dict[str, Any]] = [
    {"id": "1", "name": "耶氏台球(大学城店)", "short_name": "大学城店", "district": "呈贡区", "city": "昆明市",
     "address": "云南省昆明市呈贡区大学城聚贤街768号", "coordinates": [102.8471, 24.8736],
     "business_hours": _HOURS, "rating": 4.8},
    {"id": "2", "name": "耶氏台球(春融街店)", "short_name": "春融街店", "district": "呈贡区", "city": "昆明市",
     "address": "云南省昆明市呈贡区春融街地铁站D出口", "coordinates": [102.8547, 24.8802],
     "business_hours": _HOURS, "rating": 4.7},
    {"id": "3", "name": "耶氏台球(雨花店)", "short_name": "雨花店", "district": "呈贡区", "city": "昆明市",
     "address": "云南省昆明市呈贡区雨花路", "coordinates": [102.8392, 24.8695],
     "business_hours": _HOURS, "rating": 4.6},
    {"id": "7", "name": "耶氏台球(翠湖店)", "short_name": "翠湖店", "district": "五华区", "city": "昆明市",
     "address": "云南省昆明市五华区翠湖公园附近", "coordinates": [102.7035, 25.0502],
     "business_hours": _HOURS, "rating": 4.7},
    {"id": "8", "name": "耶氏台球(南屏街店)", "short_name": "南屏街店", "district": "五华区", "city": "昆明市",
     "address": "云南省昆明市五华区南屏街", "coordinates": [102.7108, 25.0421],
     "business_hours": _LATE_HOURS, "rating": 4.9},
    {"id": "9", "name": "耶氏台球(小西门店)", "short_name": "小西门店", "district": "五华区", "city": "昆明市",
     "address": "云南省昆明市五华区小西门", "coordinates": [102.6978, 25.0438],
     "business_hours": _HOURS, "rating": 4.6},
    {"id": "10", "name": "耶氏台球(一二一大街店)", "short_name": "一二一大街店", "district": "五华区", "city": "昆明市",
     "address": "云南省昆明市五华区一二一大街", "coordinates": [102.7021, 25.0589],
     "business_hours": _HOURS, "rating": 4.8},
    {"id": "13", "name": "耶氏台球(关上店)", "short_name": "关上店", "district": "官渡区", "city": "昆明市",
     "address": "云南省昆明市官渡区关上中路", "coordinates": [102.7389, 25.0187],
     "business_hours": _HOURS, "rating": 4.8},
    {"id": "14", "name": "耶氏台球(世纪城店)", "short_name": "世纪城店", "district": "官渡区", "city": "昆明市",
     "address": "云南省昆明市官渡区世纪城", "coordinates": [102.7621, 24.9876],
     "business_hours": _LATE_HOURS, "rating": 4.9},
    {"id": "15", "name": "耶氏台球(北京路店)", "short_name": "北京路店", "district": "盘龙区", "city": "昆明市",
     "address": "云南省昆明市盘龙区北京路", "coordinates": [102.7234, 25.0678],
     "business_hours": _HOURS, "rating": 4.7},
    {"id": "17", "name": "耶氏台球(晋宁店)", "short_name": "晋宁店", "district": "晋宁区", "city": "昆明市",
     "address": "云南省昆明市晋宁区昆阳街道", "coordinates": [102.5952, 24.6697],
     "business_hours": _HOURS, "rating": 4.7},
    {"id": "20", "name": "耶氏台球(澄江店)", "short_name": "澄江店", "district": "澄江市", "city": "玉溪市",
     "address": "云南省玉溪市澄江市凤麓街道", "coordinates": [102.9084, 24.6756],
     "business_hours": _HOURS, "rating": 4.7},
]

PRODUCTS: list[dict[str, Any]] = [
    {"id": "p1", "name": "耶氏专业比赛台", "brand": "耶氏", "category": "table", "price": 28800,
     "description": "专业比赛级别台球桌，采用进口顶级配件", "features": ["9尺国际标准", "进口台呢"]},
    {"id": "p2", "name": "耶氏商用台球桌", "brand": "耶氏", "category": "table", "price": 18800,
     "description": "适合台球厅使用的高品质台球桌", "features": ["8尺中式黑八"]},
    {"id": "p3", "name": "耶氏专业球杆", "brand": "耶氏", "category": "cue", "price": 3880,
     "description": "专业选手同款，精准度高", "features": ["碳纤维科技杆身"]},
    {"id": "p4", "name": "古帮特经典台球桌", "brand": "古帮特", "category": "table", "price": 15800,
     "description": "经典设计，性价比高", "features": ["8尺标准规格"]},
    {"id": "p10", "name": "申天堂家用台球桌", "brand": "申天堂", "category": "table", "price": 8800,
     "description": "适合家庭娱乐使用", "features": ["6尺小型"]},
]

TRAINING_PROGRAMS: list[dict[str, Any]] = [
    {"id": "t1", "title": "台球桌专业安装技术培训", "category": "installation", "duration": "5天",
     "level": "intermediate", "price": 3800, "description": "学习专业的台球桌安装、调平、维护技术",
     "features": ["台球桌结构原理", "调平技术", "台呢更换"],
     "schedule": [{"starts_at": "2024-06-10T09:00:00+08:00", "location": "昆明总部"},
                  {"starts_at": "2024-07-08T09:00:00+08:00", "location": "昆明总部"}]},
    {"id": "t2", "title": "台球技术初级培训", "category": "academy", "duration": "10课时",
     "level": "beginner", "price": 1580, "description": "零基础学员的台球入门课程",
     "features": ["握杆姿势", "基础瞄准", "力度控制"],
     "schedule": [{"starts_at": "2024-06-05T19:00:00+08:00", "location": "各门店"}]},
    {"id": "t3", "title": "职业台球技术中级培训", "category": "academy", "duration": "20课时",
     "level": "intermediate", "price": 2880, "description": "提升球技，学习职业比赛技巧",
     "features": ["高级杆法", "复杂走位", "防守策略"],
     "schedule": [{"starts_at": "2024-06-15T19:00:00+08:00", "location": "各门店"}]},
    {"id": "t4", "title": "门店运营管理培训", "category": "installation", "duration": "3天",
     "level": "beginner", "price": 2580, "description": "学习台球厅的运营管理知识",
     "features": ["门店管理", "客户服务", "营销推广"],
     "schedule": [{"starts_at": "2024-07-15T09:00:00+08:00", "location": "昆明总部"}]},
]

MODULES: list[dict[str, Any]] = [
    {"id": "about", "title": "云南耶氏体育文化发展有限公司", "category": "about",
     "description": "西南地区唯一的台球桌生产厂家，拥有20家连锁门店，致力于推广台球运动。",
     "features": ["西南地区唯一台球桌生产厂家", "拥有20家连锁门店", "4个自主品牌"]},
    {"id": "franchise", "title": "加盟耶氏台球", "category": "franchise",
     "description": "总投资30-50万元，投资回收期12-18个月，总部提供全程加盟支持。",
     "features": ["品牌支持", "技术培训", "设备优势", "区域保护"]},
    {"id": "products", "title": "产品中心", "category": "products",
     "description": "耶氏、古帮特、鑫隆基、申天堂四大品牌台球设备。",
     "features": ["台球桌", "球杆", "配件"]},
    {"id": "training", "title": "培训中心", "category": "training",
     "description": "台球技术培训与台球桌安装技术培训课程。",
     "features": ["初级培训", "中级培训", "安装技术培训"]},
]

_MODULE_TYPES = {
    "about": ContentType.ABOUT,
    "franchise": ContentType.FRANCHISE,
    "products": ContentType.PRODUCTS,
    "training": ContentType.TRAINING,
}


def build_repositories() -> tuple[InMemoryContentRepository, InMemoryStoreRepository]:
    """Load the bundled data into fresh in-memory repositories."""
    modules: dict[ContentType, ContentItem] = {
        _MODULE_TYPES[data["id"]]: content_from_dict(data) for data in MODULES
    }
    content = InMemoryContentRepository(modules=modules)
    for data in PRODUCTS + TRAINING_PROGRAMS:
        content.add(content_from_dict(data))

    stores = [content_from_dict(data) for data in STORES]
    return content, InMemoryStoreRepository(s for s in stores if isinstance(s, Store))
