"""Configuration, scenario binding, failure ledger, lifecycle and executor."""
