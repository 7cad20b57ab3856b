"""Command line client for the Messstation dashboard API."""
