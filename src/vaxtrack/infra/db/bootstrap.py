from __future__ import annotations

import logging
from typing import Optional

from src.vaxtrack.config import settings
from src.vaxtrack.infra.db.models import Base
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories
from src.vaxtrack.infra.db.session import create_engine_for_url, create_sqlalchemy_session_factory

logger = logging.getLogger(__name__)


def init_sql_repositories(
    database_url: Optional[str] = None,
    *,
    registry: RepositoryRegistry = repositories,
    force: bool = False,
) -> bool:
    """Switch the registry to SQL-backed repositories when configured.

    If USE_SQL_REPOS is not enabled or DATABASE_URL is not configured, this is
    a no-op and the in-memory repositories stay active. Returns True when the
    swap happened.
    """

    if not (settings.use_sql_repos or force):
        return False

    db_url = database_url or settings.database_url
    if not db_url:
        logger.warning("USE_SQL_REPOS is set but DATABASE_URL is empty; keeping in-memory repositories")
        return False

    engine = create_engine_for_url(db_url)

    # Tables are created on startup; there is no migration tooling yet.
    Base.metadata.create_all(engine)

    registry.use_sql(create_sqlalchemy_session_factory(engine))
    logger.info("Using SQL repositories at %s", engine.url.render_as_string(hide_password=True))
    return True
