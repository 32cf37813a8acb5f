"""Service container shared by every request.

Built once by create_app() and stored on app.state.services; routes get
it (or parts of it) through the dependencies in thotnet.web.dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from thotnet.config.app_config import AppConfig, load_app_config
from thotnet.core import analytics, badge_awards
from thotnet.db.database import Database
from thotnet.events.bus import EventBus
from thotnet.llm.chain import ProviderChain

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    db: Database
    llm: ProviderChain
    bus: EventBus
    config: AppConfig


def build_services(
    config: AppConfig | None = None,
    db: Database | None = None,
    llm: ProviderChain | None = None,
    bus: EventBus | None = None,
) -> Services:
    """Wire the container: schema, badge catalogue and analytics recorders.

    Any part can be passed in (tests hand in a tmp database and a mock LLM).
    """
    config = config or load_app_config()
    db = db or Database(config.database.path)
    db.init_schema()
    seeded = badge_awards.seed_badges(db)

    bus = bus or EventBus()
    analytics.register_event_recorders(bus, db)

    if llm is None:
        llm = ProviderChain.from_config(config)

    logger.info("services_ready", db_path=str(db.path), badges=seeded, providers=llm.providers)
    return Services(db=db, llm=llm, bus=bus, config=config)
