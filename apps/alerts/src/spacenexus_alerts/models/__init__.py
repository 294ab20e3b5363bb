"""SQLAlchemy models package."""

from .alerts import (  # noqa: F401
    AlertChannel,
    AlertDelivery,
    AlertDeliveryStatus,
    AlertHistory,
    AlertPriority,
    AlertRule,
)
from .companies import (  # noqa: F401
    CompanyProfile,
    CompanyWatchlistItem,
    WatchlistAlertLog,
    WatchlistAlertType,
)
from .content import (  # noqa: F401
    GovernmentContractAward,
    NewsArticle,
    ServiceListing,
    news_article_company_tags,
)
