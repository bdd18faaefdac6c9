"""
bandsweep - LTE band combination testing.

Try every band combination, measure throughput and signal, resume after
interruptions, rank the results.
"""

from bandsweep.combos import canonical_identity, generate_combinations
from bandsweep.config import CampaignConfig
from bandsweep.failures import FailureState
from bandsweep.orchestrator import Orchestrator
from bandsweep.progress import ProgressStore

__version__ = "0.1.0"
__all__ = [
    "CampaignConfig",
    "FailureState",
    "Orchestrator",
    "ProgressStore",
    "__version__",
    "canonical_identity",
    "generate_combinations",
]
