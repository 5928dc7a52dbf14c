"""branchsync command-line interface."""
