"""Run the API server: python -m api."""
import asyncio
import logging
import sys

import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from core.config import get_settings
from db.session import check_connection, create_engine

logger = logging.getLogger(__name__)


async def _database_reachable() -> bool:
    engine = create_engine(get_settings())
    try:
        await check_connection(engine)
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.critical("database_unreachable", extra={"error": str(e)})
        return False
    finally:
        await engine.dispose()


def main() -> None:
    """Check the database, then start uvicorn on the configured port."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    settings = get_settings()
    if not asyncio.run(_database_reachable()):
        sys.exit(1)
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=not settings.is_production,
    )


if __name__ == "__main__":
    main()
