"""Operator command line for ThotNet."""
