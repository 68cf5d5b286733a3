"""Persistence — the audit ledger."""
