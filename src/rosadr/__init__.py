"""
rosadr - ROSA HCP disaster-recovery backup provisioning and teardown
"""

__version__ = "0.1.0"

from .errors import DRError
from .provisioning import ProvisioningPipeline
from .teardown import TeardownPipeline

__all__ = ["DRError", "ProvisioningPipeline", "TeardownPipeline"]
