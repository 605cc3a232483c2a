"""FastAPI dependencies for injection."""
from core.auth import get_current_user, require_roles
from core.config import get_settings
from core.rate_limiter import moderate_rate_limit, role_based_rate_limit
from core.redis import get_redis_client
from core.session_cache import get_session_cache
from db.session import get_async_session
from models.user import Role

# Shared role gates; one callable per gate so FastAPI caches it within a request
require_admin = require_roles(Role.ADMIN)
require_staff = require_roles(Role.ADMIN, Role.TEACHER)

__all__ = [
    "get_async_session",
    "get_current_user",
    "get_redis_client",
    "get_session_cache",
    "get_settings",
    "moderate_rate_limit",
    "require_admin",
    "require_staff",
    "role_based_rate_limit",
]
