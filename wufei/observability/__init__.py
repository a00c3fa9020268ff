"""Diagnostic logging and metrics for Wufei."""
