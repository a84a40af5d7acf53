"""Mixer state machine, ledgers and note handling."""
