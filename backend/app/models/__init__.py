"""Models package."""
from app.models.tenant import Tenant, Domain, DomainStatus, Language, Category, Reporter
from app.models.article import (
    Article, NewspaperArticle, WebArticle, ShortNews,
    ArticleStatus, AiStatus, AiMode,
)
from app.models.prompt import Prompt
from app.models.engagement import ArticleRead, ShortNewsRead
from app.models.ai_usage import AiUsageEvent

__all__ = [
    "Tenant", "Domain", "DomainStatus", "Language", "Category", "Reporter",
    "Article", "NewspaperArticle", "WebArticle", "ShortNews",
    "ArticleStatus", "AiStatus", "AiMode",
    "Prompt", "ArticleRead", "ShortNewsRead", "AiUsageEvent",
]
