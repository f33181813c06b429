"""Command line interface for DataHub Analytics."""
