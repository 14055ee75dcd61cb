"""Declarative base shared by every Nexo table."""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Unique and foreign key names embed the column, so integrity errors name the field.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
