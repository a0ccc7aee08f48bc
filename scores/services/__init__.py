from .aggregator import UnifiedResultsService
from .dashboard import DashboardService
from .entry_service import EntryService, OperationResult
from .handicap import HandicapCalculator, HandicapProfile
from .medals import MedalTally, MedalTallyService
from .normalizer import ResultEntry, ResultNormalizer, SourceType
from .personal_bests import PersonalBest, PersonalBestTracker
from .shooter_statistics import KeyedLockRegistry, ShooterStatisticsService
from .statistics import Statistics, StatisticsCalculator

__all__ = [
    "UnifiedResultsService",
    "DashboardService",
    "EntryService",
    "OperationResult",
    "HandicapCalculator",
    "HandicapProfile",
    "MedalTally",
    "MedalTallyService",
    "ResultEntry",
    "ResultNormalizer",
    "SourceType",
    "PersonalBest",
    "PersonalBestTracker",
    "KeyedLockRegistry",
    "ShooterStatisticsService",
    "Statistics",
    "StatisticsCalculator",
]
