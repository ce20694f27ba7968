"""Custom SQLAlchemy types for cross-database compatibility"""
from sqlalchemy import TypeDecorator, String, Enum as SQLEnum
import enum
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value


def ValueEnum(enum_cls: type, **kwargs) -> SQLEnum:
    """
    Enum column that stores member *values* ("admin") rather than names
    ("ADMIN"), so raw SQL reads and writes use the same strings as the API.
    """
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        validate_strings=True,
        length=max(len(member.value) for member in enum_cls),
        **kwargs
    )


class StrEnum(str, enum.Enum):
    """Base for string enums used across models and schemas"""

    def __str__(self) -> str:
        return self.value
