"""branchdb command-line interface."""
