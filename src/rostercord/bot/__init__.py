"""Discord-facing side of Rostercord: platform adapter, provisioning, runtime wiring and cogs."""
