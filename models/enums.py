"""Enumerations for generation state, cadence and publishing platforms."""

from enum import Enum


class EbookStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ThemeMode(str, Enum):
    SINGLE_THEME = "single_theme"
    CUSTOM_LIST = "custom_list"
    TRENDING = "trending"


class Platform(str, Enum):
    AMAZON_KDP = "amazon_kdp"
    HOTMART = "hotmart"
    EDUZZ = "eduzz"
    MONETIZZE = "monetizze"
    KIWIFY = "kiwify"
    VOOMP = "voomp"


class SalesPotential(str, Enum):
    LOW = "baixo"
    MEDIUM = "médio"
    HIGH = "alto"
    VERY_HIGH = "muito alto"
