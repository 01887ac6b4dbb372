"""Models package: database, dataclass models, and enums."""

from models.database import Database
from models.ebook import Ebook, EbookFile, EbookMetadata
from models.finance import Publication, PublishingGuide, FinancialMetric
from models.schedule import Schedule
from models.enums import (
    EbookStatus,
    Frequency,
    ThemeMode,
    Platform,
    SalesPotential,
)

__all__ = [
    "Database",
    "Ebook",
    "EbookFile",
    "EbookMetadata",
    "Publication",
    "PublishingGuide",
    "FinancialMetric",
    "Schedule",
    "EbookStatus",
    "Frequency",
    "ThemeMode",
    "Platform",
    "SalesPotential",
]
