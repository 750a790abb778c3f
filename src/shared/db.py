"""Database helpers: schema management and raw access to the provider's sessions."""

from contextlib import contextmanager

from protean.domain import Domain
from protean.exceptions import IncorrectUsageError
from protean.utils.globals import current_uow
from sqlalchemy import create_engine


def setup_db(domain: Domain):
    """Setup database schema"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])

                for _, aggregate_record in domain.registry.aggregates.items():
                    if aggregate_record.cls.meta_.provider == provider.name:
                        domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

                for _, entity_record in domain.registry.entities.items():
                    if entity_record.cls.meta_.provider == provider.name:
                        domain.repository_for(entity_record.cls)._dao  # noqa: B018

                # Force DAO creation for outbox tables (registered as internal)
                if hasattr(domain, "_outbox_repos") and provider.name in domain._outbox_repos:
                    domain._outbox_repos[provider.name]._dao  # noqa: B018

                provider._metadata.create_all(engine)
                engine.dispose()


def drop_db(domain: Domain):
    """Drop database schema"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)
                engine.dispose()


def table_of(dao):
    """The SQLAlchemy table backing a Protean DAO."""
    return dao.database_model_cls.__table__


@contextmanager
def dao_session(dao):
    """Session for read statements: the active unit of work's, or a short-lived one."""
    session = dao._get_session()
    try:
        yield session
    finally:
        if not current_uow:
            session.close()


def uow_session(dao):
    """Session of the active unit of work, for writes that must commit with it.

    Pending ORM changes are flushed first so raw statements see them.
    """
    if not current_uow:
        raise IncorrectUsageError({"_entity": ["Conditional updates must run inside a unit of work"]})
    session = dao._get_session()
    session.flush()
    return session
