# Core tracker components

# Export the signal loop entry point and the state it exposes
from .orchestrator import Orchestrator
from .tracker import MatchStateTracker, NoActiveMatchError
from .detectors import MatchPhase

# Export formatter for match state display
from .formatters import MatchStateFormatter

# Export performance monitoring
from .monitoring import PerformanceMonitor

__all__ = [
    'Orchestrator',
    'MatchStateTracker',
    'NoActiveMatchError',
    'MatchPhase',
    'MatchStateFormatter',
    'PerformanceMonitor',
]
