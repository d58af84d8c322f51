"""Database connections."""

from .postgres import Base, PostgresDatabase
from .neo4j import Neo4jDatabase
from .models import MediaAssetRecord

__all__ = [
    "Base",
    "PostgresDatabase",
    "Neo4jDatabase",
    "MediaAssetRecord",
]
