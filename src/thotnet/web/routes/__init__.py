"""Route handlers for the Web API."""

from thotnet.web.routes.analytics import router as analytics_router
from thotnet.web.routes.courses import router as courses_router
from thotnet.web.routes.enrollment import router as enrollment_router
from thotnet.web.routes.gamification import router as gamification_router
from thotnet.web.routes.generation import router as generation_router
from thotnet.web.routes.health import router as health_router
from thotnet.web.routes.kg import router as kg_router
from thotnet.web.routes.leaderboard import router as leaderboard_router
from thotnet.web.routes.news import bookmarks_router
from thotnet.web.routes.news import router as news_router
from thotnet.web.routes.profile import router as profile_router
from thotnet.web.routes.recommendations import router as recommendations_router
from thotnet.web.routes.search import router as search_router

# Fixed paths (enroll, generate-advanced) go before /api/courses/{course_id}
ALL_ROUTERS = [
    health_router,
    enrollment_router,
    generation_router,
    courses_router,
    news_router,
    bookmarks_router,
    search_router,
    recommendations_router,
    kg_router,
    leaderboard_router,
    profile_router,
    gamification_router,
    analytics_router,
]

__all__ = [
    "ALL_ROUTERS",
    "analytics_router",
    "bookmarks_router",
    "courses_router",
    "enrollment_router",
    "gamification_router",
    "generation_router",
    "health_router",
    "kg_router",
    "leaderboard_router",
    "news_router",
    "profile_router",
    "recommendations_router",
    "search_router",
]
