"""Configuration, logging setup and error aggregation."""
