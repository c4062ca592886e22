"""Reporting module - outbreak tallies and covariate distributions."""
