"""branchsync workflow engine: git, Neon branches, and the local env file."""

__version__ = "0.1.0"
