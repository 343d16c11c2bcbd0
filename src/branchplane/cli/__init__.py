"""Command-line interface for BranchPlane."""
