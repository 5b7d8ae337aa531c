"""Provider connections feature: lookup and token rotation."""

from .orm_models import GitProviderConnectionORM, MessagingProviderConnectionORM
from .repository import ConnectionRepositoryInterface, SQLAlchemyConnectionRepository
from .schemas import ConnectionKind, GitConnection, MessagingConnection

__all__ = [
    "GitProviderConnectionORM",
    "MessagingProviderConnectionORM",
    "ConnectionRepositoryInterface",
    "SQLAlchemyConnectionRepository",
    "ConnectionKind",
    "GitConnection",
    "MessagingConnection",
]
