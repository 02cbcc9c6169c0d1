"""Moderation ledger and membership state engine.

- models: member, warning ledger and ban records plus operation outcomes
- engine: the state machine applying roster operations to the record store
- events: outbound boundary for notifications and role-sync signals
"""
