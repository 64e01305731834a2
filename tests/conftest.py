"""
Shared fixtures for the progress kernel tests.

Database: DATABASE_URL when set (PostgreSQL for the threaded concurrency
tests), otherwise a SQLite file in a per-run temporary directory.  Tables are
created once per run.  Each test gets a ``session`` whose work is rolled back
at teardown; ``committed_session_factory`` is for tests that need real
commits and empties every table afterwards.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from progress_config import get_milestone_definitions
from progress_kernel.db.base import Base
from progress_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from progress_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from progress_kernel.domain.clock import DeterministicClock
from progress_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from progress_kernel.models import Actor, Component, Project
from progress_kernel.services import (
    AllowAllTemplateAuthority,
    TemplateEditingService,
    TemplateStoreService,
)


# -- logging ------------------------------------------------------------------


@pytest.fixture(autouse=True, scope="session")
def _json_logging_to_nowhere():
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _fresh_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Collect everything logged under ``progress_kernel`` during the test.

    Call the fixture value to get the records so far as parsed dicts::

        editing_service.update_template(...)
        assert any(r["message"] == "template_updated" for r in captured_logs())
    """
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    kernel_logger = logging.getLogger("progress_kernel")
    saved_level = kernel_logger.level
    kernel_logger.setLevel(logging.DEBUG)
    kernel_logger.addHandler(handler)

    yield lambda: [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    kernel_logger.removeHandler(handler)
    kernel_logger.setLevel(saved_level)


# -- database -----------------------------------------------------------------


@pytest.fixture(scope="session")
def db_engine(tmp_path_factory):
    url = os.environ.get("DATABASE_URL")
    if not url:
        url = f"sqlite:///{tmp_path_factory.mktemp('db') / 'progress_test.db'}"
    engine = init_engine_from_url(url, pool_size=10, max_overflow=10)
    yield engine
    reset_engine()


@pytest.fixture(scope="session")
def is_postgres(db_engine) -> bool:
    return db_engine.dialect.name == "postgresql"


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Schema plus integrity listeners, for the whole run."""
    drop_tables()
    create_tables()
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables()


@pytest.fixture
def session(db_tables, db_engine):
    """
    Session bound to an outer transaction that teardown rolls back.

    ``join_transaction_mode="create_savepoint"`` turns a commit inside the
    test into a savepoint release, so nothing outlives the test.
    """
    connection = db_engine.connect()
    outer = connection.begin()
    test_session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )
    try:
        yield test_session
    finally:
        test_session.close()
        outer.rollback()
        connection.close()


@pytest.fixture
def committed_session_factory(db_engine, db_tables):
    yield sessionmaker(bind=db_engine, expire_on_commit=False)

    names = [table.name for table in reversed(Base.metadata.sorted_tables)]
    with db_engine.begin() as connection:
        if db_engine.dialect.name == "postgresql":
            connection.execute(text(f"TRUNCATE {', '.join(names)} CASCADE"))
        else:
            for name in names:
                connection.execute(text(f"DELETE FROM {name}"))


# -- domain -------------------------------------------------------------------


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture(scope="session")
def milestone_definitions():
    return get_milestone_definitions()


@pytest.fixture
def seeded_definitions(session, milestone_definitions, deterministic_clock):
    """The default definition set, seeded inside the test transaction."""
    TemplateStoreService(session, deterministic_clock).seed_milestone_definitions(
        milestone_definitions
    )
    return milestone_definitions


@pytest.fixture
def test_actor(session) -> Actor:
    actor = Actor(display_name="Test Project Manager")
    session.add(actor)
    session.flush()
    return actor


@pytest.fixture
def project(session) -> Project:
    row = Project(name="Refinery Unit 7")
    session.add(row)
    session.flush()
    return row


@pytest.fixture
def authority():
    return AllowAllTemplateAuthority()


@pytest.fixture
def editing_service(session, authority, deterministic_clock) -> TemplateEditingService:
    return TemplateEditingService(session, authority, deterministic_clock)


@pytest.fixture
def make_component(session):
    """``make_component(project.id, "valve", {"Receive": 100})`` -> flushed Component."""

    def _make(
        project_id,
        component_type: str,
        milestones: dict | None = None,
        percent_complete: Decimal = Decimal("0.00"),
    ) -> Component:
        component = Component(
            project_id=project_id,
            component_type=component_type,
            current_milestones=milestones or {},
            percent_complete=percent_complete,
        )
        session.add(component)
        session.flush()
        return component

    return _make
