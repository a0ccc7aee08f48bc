"""
Centralized configuration for the club scoring engine.

Cache timeouts, trend windows and handicap parameters are defined here
and can be overridden via environment variables.
"""
from dataclasses import dataclass, field
import os


def _provisional_averages() -> dict:
    return {
        "Klass 1 - Nybörjare": float(os.getenv('HANDICAP_PROVISIONAL_CLASS_1', '44.0')),
        "Klass 2 - Guldmärkesskytt": float(os.getenv('HANDICAP_PROVISIONAL_CLASS_2', '46.0')),
        "Klass 3 - Riksmästare": float(os.getenv('HANDICAP_PROVISIONAL_CLASS_3', '48.0')),
    }


@dataclass(frozen=True)
class TimingConfig:
    """Timing and interval configuration."""

    # Cache timeout for a member's merged result timeline
    RESULTS_CACHE_TIMEOUT: int = int(os.getenv('RESULTS_CACHE_TIMEOUT', '60'))

    # Cache timeout for yearly medal tallies (finalized documents rarely change)
    MEDAL_CACHE_TIMEOUT: int = int(os.getenv('MEDAL_CACHE_TIMEOUT', '600'))

    # Length of the "recent" and "previous" trend windows
    TREND_WINDOW_DAYS: int = int(os.getenv('TREND_WINDOW_DAYS', '30'))

    # Maximum cache entries
    CACHE_MAX_ENTRIES: int = int(os.getenv('CACHE_MAX_ENTRIES', '1000'))


@dataclass(frozen=True)
class HandicapConfig:
    """Handicap system configuration."""

    # Reference score per series the handicap is calculated against
    REFERENCE_SERIES_SCORE: float = float(os.getenv('HANDICAP_REFERENCE_SERIES_SCORE', '48.0'))

    # Upper bound for the handicap bonus per series (no lower bound)
    MAX_HANDICAP_PER_SERIES: float = float(os.getenv('HANDICAP_MAX_PER_SERIES', '10.0'))

    # Completed matches before a shooter stops being provisional
    REQUIRED_MATCHES: int = int(os.getenv('HANDICAP_REQUIRED_MATCHES', '5'))

    # Maximum possible score in one series (5 shots x 10 points)
    MAX_SCORE_PER_SERIES: float = 50.0

    # Starting index per shooter class for new shooters
    PROVISIONAL_AVERAGES: dict = field(default_factory=_provisional_averages)


@dataclass(frozen=True)
class HealthConfig:
    """Logging configuration."""

    # Directory for application logs
    LOG_DIR: str = os.getenv('LOG_DIR', 'logs')

    # Maximum log file size before rotation (10 MB)
    LOG_MAX_BYTES: int = int(os.getenv('LOG_MAX_BYTES', '10485760'))

    # Number of rotated log files to keep
    LOG_BACKUP_COUNT: int = int(os.getenv('LOG_BACKUP_COUNT', '5'))


# Singleton instances - import these from other modules
TIMING = TimingConfig()
HANDICAP = HandicapConfig()
HEALTH = HealthConfig()
