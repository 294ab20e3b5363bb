from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base shared by every alert pipeline model."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# Import models so Alembic autogenerate sees the full metadata
try:  # pragma: no cover - import side effects only
    import spacenexus_alerts.models  # noqa: F401
except ImportError:  # pragma: no cover - partial imports during migrations
    pass
