"""
Built-in URL catalog and per-category fetch configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.crawling.config.models import CategoryConfig
from app.crawling.types import UrlCategory, UrlTarget

BROKER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass(frozen=True)
class _Site:
    name: str
    urls: tuple[str, ...]
    region: str | None = None
    regulation: str | None = None


MAJOR_BROKERS: tuple[_Site, ...] = (
    _Site(
        "IG Group",
        (
            "https://www.ig.com/",
            "https://www.ig.com/en/forex",
            "https://www.ig.com/en/cfd-trading",
            "https://www.ig.com/en/about-us",
        ),
        region="UK",
        regulation="FCA",
    ),
    _Site(
        "Plus500",
        (
            "https://www.plus500.com/",
            "https://www.plus500.com/en/trading/forex",
            "https://www.plus500.com/en/trading/cfd",
            "https://www.plus500.com/en/help/aboutus",
        ),
        region="UK/Cyprus",
        regulation="FCA/CySEC",
    ),
    _Site(
        "eToro",
        (
            "https://www.etoro.com/",
            "https://www.etoro.com/trading/forex/",
            "https://www.etoro.com/trading/cfd/",
            "https://www.etoro.com/customer-service/about-etoro/",
        ),
        region="Cyprus",
        regulation="CySEC",
    ),
    _Site(
        "XM Group",
        (
            "https://www.xm.com/",
            "https://www.xm.com/forex",
            "https://www.xm.com/cfds",
            "https://www.xm.com/company",
        ),
        region="Cyprus",
        regulation="CySEC",
    ),
    _Site(
        "FXCM",
        (
            "https://www.fxcm.com/",
            "https://www.fxcm.com/markets/forex/",
            "https://www.fxcm.com/markets/indices/",
            "https://www.fxcm.com/about/",
        ),
        region="UK",
        regulation="FCA",
    ),
)

REGIONAL_BROKERS: dict[str, tuple[_Site, ...]] = {
    "europe": (
        _Site(
            "Admiral Markets",
            (
                "https://admiralmarkets.com/",
                "https://admiralmarkets.com/education",
                "https://admiralmarkets.com/trading/forex",
            ),
            region="Estonia",
            regulation="EFSA",
        ),
        _Site(
            "Pepperstone",
            (
                "https://pepperstone.com/",
                "https://pepperstone.com/en/trading/forex",
                "https://pepperstone.com/en/trading/cfds",
            ),
            region="UK/Australia",
            regulation="FCA/ASIC",
        ),
    ),
    "asia": (
        _Site(
            "OANDA",
            (
                "https://www.oanda.com/",
                "https://www.oanda.com/forex-trading/",
                "https://www.oanda.com/trading/platforms/",
            ),
            region="Singapore/Japan",
            regulation="MAS/FSA",
        ),
        _Site(
            "IC Markets",
            (
                "https://www.icmarkets.com/",
                "https://www.icmarkets.com/global/en/trading/forex",
                "https://www.icmarkets.com/global/en/trading/cfds",
            ),
            region="Australia",
            regulation="ASIC",
        ),
    ),
    "americas": (
        _Site(
            "Interactive Brokers",
            (
                "https://www.interactivebrokers.com/",
                "https://www.interactivebrokers.com/en/trading/products-forex.php",
                "https://www.interactivebrokers.com/en/trading/products-stocks.php",
            ),
            region="USA",
            regulation="SEC/FINRA",
        ),
        _Site(
            "TD Ameritrade",
            (
                "https://www.tdameritrade.com/",
                "https://www.tdameritrade.com/investment-products/forex-trading.html",
                "https://www.tdameritrade.com/why-td-ameritrade.html",
            ),
            region="USA",
            regulation="SEC/FINRA",
        ),
    ),
}

REVIEW_SITES: tuple[_Site, ...] = (
    _Site(
        "ForexBrokers.com",
        (
            "https://www.forexbrokers.com/",
            "https://www.forexbrokers.com/guides/best-forex-brokers",
            "https://www.forexbrokers.com/reviews",
        ),
    ),
    _Site(
        "BrokerChooser",
        (
            "https://brokerchooser.com/",
            "https://brokerchooser.com/broker-reviews",
            "https://brokerchooser.com/compare",
        ),
    ),
    _Site(
        "Investopedia Broker Reviews",
        (
            "https://www.investopedia.com/best-online-brokers-4587872",
            "https://www.investopedia.com/best-forex-brokers-4770046",
        ),
    ),
)

REGULATORY_SITES: tuple[_Site, ...] = (
    _Site(
        "FCA (UK)",
        (
            "https://www.fca.org.uk/",
            "https://www.fca.org.uk/firms/financial-services-register",
        ),
        region="UK",
    ),
    _Site(
        "CySEC (Cyprus)",
        (
            "https://www.cysec.gov.cy/",
            "https://www.cysec.gov.cy/en-GB/entities/investment-firms/",
        ),
        region="Cyprus",
    ),
    _Site(
        "ASIC (Australia)",
        (
            "https://asic.gov.au/",
            "https://download.asic.gov.au/media/",
        ),
        region="Australia",
    ),
)

NEWS_SITES: tuple[_Site, ...] = (
    _Site(
        "ForexLive",
        (
            "https://www.forexlive.com/",
            "https://www.forexlive.com/news/",
        ),
    ),
    _Site(
        "Finance Magnates",
        (
            "https://www.financemagnates.com/",
            "https://www.financemagnates.com/forex/",
        ),
    ),
)

PRIORITY_URLS: tuple[str, ...] = (
    "https://www.ig.com/",
    "https://www.plus500.com/",
    "https://www.etoro.com/",
    "https://www.xm.com/",
    "https://www.fxcm.com/",
    "https://www.forexbrokers.com/",
    "https://brokerchooser.com/",
    "https://www.fca.org.uk/firms/financial-services-register",
    "https://www.cysec.gov.cy/en-GB/entities/investment-firms/",
)

BROKER_CONFIG = CategoryConfig(
    name=UrlCategory.BROKER,
    delay_seconds=2.0,
    timeout_seconds=30.0,
    retries=3,
    headers={"User-Agent": BROKER_USER_AGENT},
)

CATEGORY_CONFIGS: dict[str, CategoryConfig] = {
    UrlCategory.BROKER: BROKER_CONFIG,
    UrlCategory.REVIEW: CategoryConfig(
        name=UrlCategory.REVIEW,
        delay_seconds=1.5,
        timeout_seconds=25.0,
        retries=2,
    ),
    UrlCategory.REGULATORY: CategoryConfig(
        name=UrlCategory.REGULATORY,
        delay_seconds=3.0,
        timeout_seconds=45.0,
        retries=2,
    ),
    UrlCategory.NEWS: CategoryConfig(
        name=UrlCategory.NEWS,
        delay_seconds=1.0,
        timeout_seconds=20.0,
        retries=2,
    ),
}


def category_config(category: str) -> CategoryConfig:
    """
    Fetch tuning for `category`; unknown categories (priority included) use
    the broker values.
    """

    return CATEGORY_CONFIGS.get(category, BROKER_CONFIG)


def _expand(sites: tuple[_Site, ...], category: str) -> list[UrlTarget]:
    return [
        UrlTarget(
            url=url,
            category=category,
            label=site.name,
            region=site.region,
            regulation=site.regulation,
        )
        for site in sites
        for url in site.urls
    ]


def broker_targets() -> list[UrlTarget]:
    targets = _expand(MAJOR_BROKERS, UrlCategory.BROKER)
    for sites in REGIONAL_BROKERS.values():
        targets.extend(_expand(sites, UrlCategory.BROKER))
    return targets


def review_targets() -> list[UrlTarget]:
    return _expand(REVIEW_SITES, UrlCategory.REVIEW)


def regulatory_targets() -> list[UrlTarget]:
    return _expand(REGULATORY_SITES, UrlCategory.REGULATORY)


def news_targets() -> list[UrlTarget]:
    return _expand(NEWS_SITES, UrlCategory.NEWS)


def priority_targets() -> list[UrlTarget]:
    return [UrlTarget(url=url, category=UrlCategory.PRIORITY) for url in PRIORITY_URLS]


def all_targets() -> list[UrlTarget]:
    return broker_targets() + review_targets() + regulatory_targets() + news_targets()
