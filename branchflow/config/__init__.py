"""Settings and branch hierarchy."""

from branchflow.config.hierarchy import BranchHierarchy, parent_key
from branchflow.config.settings import BranchflowSettings, HostingConfig, load_settings

__all__ = ["BranchHierarchy", "BranchflowSettings", "HostingConfig", "load_settings", "parent_key"]
