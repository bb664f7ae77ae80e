from dependency_injector import containers, providers

from tokensnap.config import Settings
from tokensnap.db.session import build_engine, build_session_factory
from tokensnap.engine.admission import AdmissionGate
from tokensnap.infra.hypersync.client import build_source_factory


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=["tokensnap.api.deps", "tokensnap.api.admin"])

    settings = providers.Singleton(Settings)

    engine = providers.Singleton(
        build_engine,
        database_url=settings.provided.database_url,
        echo=settings.provided.debug,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    # One gate per process: the shared upstream credential is a process-wide resource
    admission_gate = providers.Singleton(
        AdmissionGate,
        limit=settings.provided.admission_limit,
        retry_after=settings.provided.admission_retry_after,
    )

    source_factory = providers.Singleton(
        build_source_factory,
        settings=settings,
    )
