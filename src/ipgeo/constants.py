"""Centralized constants for all modules."""

# Network defaults
DEFAULT_PREFIX_V4 = 24
DEFAULT_PREFIX_V6 = 64
MAX_TOTAL_IPS = 2**64  # saturation point for address counts
DEFAULT_NETWORK_TYPE = "broadband"

# Localized names
PRIMARY_LANGUAGE = "zh-CN"
FALLBACK_LANGUAGE = "en"

# Domestic (regional) source
DOMESTIC_COUNTRY_CODE = "CN"
DOMESTIC_COUNTRY_NAME = "中国"
DOMESTIC_TIMEZONE = "Asia/Shanghai"

# Database files and where to fetch them
ASN_DB_PATH = "mmdb/GeoLite2-ASN.mmdb"
CITY_DB_PATH = "mmdb/GeoIP2-City.mmdb"
GEOCN_DB_PATH = "mmdb/GeoCN.mmdb"

ASN_DB_URL = "https://github.com/P3TERX/GeoLite.mmdb/raw/download/GeoLite2-ASN.mmdb"
CITY_DB_URL = "https://pan.dnslin.com/d/pan/GeoIP2-City.mmdb"
GEOCN_DB_URL = "http://github.com/ljxi/GeoCN/releases/download/Latest/GeoCN.mmdb"

# Download policy
DOWNLOAD_TIMEOUT = 30  # seconds, per attempt
DOWNLOAD_MAX_RETRIES = 3
DOWNLOAD_RETRY_DELAY = 1.0  # seconds, multiplied by the attempt number
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# Server
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

# Well-known autonomous systems and the carrier label they are shown with
ASN_CARRIERS = {
    4134: "中国电信",
    4809: "中国电信CN2",
    4812: "中国电信",
    23724: "中国电信IDC",
    134420: "中国电信云",
    4837: "中国联通",
    4808: "中国联通",
    9929: "中国联通CUII",
    10099: "中国联通国际",
    17621: "中国联通",
    9808: "中国移动",
    24400: "中国移动",
    56040: "中国移动",
    56041: "中国移动",
    56046: "中国移动",
    56047: "中国移动",
    58453: "中国移动国际",
    9394: "中国铁通",
    4538: "中国教育网",
    4847: "中国电信",
    7497: "中国科技网",
    37963: "阿里云",
    45102: "阿里云国际",
    45090: "腾讯云",
    132203: "腾讯云国际",
    55990: "华为云",
    136907: "华为云国际",
    38365: "百度云",
    59019: "金山云",
    13335: "Cloudflare",
    15169: "Google",
    396982: "Google Cloud",
    16509: "Amazon AWS",
    14618: "Amazon AWS",
    8075: "Microsoft Azure",
    32934: "Meta",
    20940: "Akamai",
    54113: "Fastly",
    14061: "DigitalOcean",
    16276: "OVH",
    24940: "Hetzner",
    20473: "Vultr",
    63949: "Linode",
    31898: "Oracle Cloud",
}

# Keywords in a domestic ISP name and the carrier they denote
CARRIER_KEYWORDS = (
    ("电信", "中国电信"),
    ("联通", "中国联通"),
    ("移动", "中国移动"),
    ("铁通", "中国铁通"),
    ("广电", "中国广电"),
    ("教育网", "中国教育网"),
    ("鹏博士", "鹏博士"),
    ("阿里", "阿里云"),
    ("腾讯", "腾讯云"),
    ("华为", "华为云"),
)

# Province-level divisions: short name -> canonical full name
PROVINCE_NAMES = {
    "北京": "北京市",
    "天津": "天津市",
    "上海": "上海市",
    "重庆": "重庆市",
    "河北": "河北省",
    "山西": "山西省",
    "辽宁": "辽宁省",
    "吉林": "吉林省",
    "黑龙江": "黑龙江省",
    "江苏": "江苏省",
    "浙江": "浙江省",
    "安徽": "安徽省",
    "福建": "福建省",
    "江西": "江西省",
    "山东": "山东省",
    "河南": "河南省",
    "湖北": "湖北省",
    "湖南": "湖南省",
    "广东": "广东省",
    "海南": "海南省",
    "四川": "四川省",
    "贵州": "贵州省",
    "云南": "云南省",
    "陕西": "陕西省",
    "甘肃": "甘肃省",
    "青海": "青海省",
    "台湾": "台湾省",
    "内蒙古": "内蒙古自治区",
    "广西": "广西壮族自治区",
    "西藏": "西藏自治区",
    "宁夏": "宁夏回族自治区",
    "新疆": "新疆维吾尔自治区",
    "香港": "香港特别行政区",
    "澳门": "澳门特别行政区",
}

# Complete administrative suffixes. A bare trailing 州 is part of many names
# (广州, 通州), so only 自治州 counts as a prefecture suffix.
CITY_SUFFIXES = ("地区", "市", "自治州", "盟")
DISTRICT_SUFFIXES = ("区", "县", "旗")
CITY_SUFFIX = "市"
DISTRICT_SUFFIX = "区"
