"""Service layer package.

Exports high-level services consumed by the CLI and the importer.
"""

from .ingest_service import IngestService, IngestServiceConfig
from .stats_service import SquareClusterGeometry, StatsService, StatsSummary

__all__ = [
    "IngestService",
    "IngestServiceConfig",
    "SquareClusterGeometry",
    "StatsService",
    "StatsSummary",
]
