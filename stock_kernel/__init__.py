"""
stock_kernel -- Core of the inventory reorder & stock alert engine.

Holds the typed exceptions, structured logging, database plumbing, the
injectable clock, frozen domain types, ORM models, and the two stores every
other layer builds on: the append-only usage ledger and the alert settings
singleton.

Nothing in stock_kernel imports from stock_engines, stock_services,
stock_batch or stock_config.
"""
