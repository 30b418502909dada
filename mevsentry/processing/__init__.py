"""Tabular input and output for transaction and attack records."""
