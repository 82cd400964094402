"""branchflow: resumable, abortable git branch workflows."""

__version__ = "0.1.0"
