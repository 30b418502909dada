"""Fetch transaction records from Ethereum JSON-RPC nodes."""
