"""Shared helpers for logging, time handling and the command line."""
