"""Core domain package for the relay.

Core contains fingerprinting, allow-listing, album aggregation, dedup, queue
and scheduling logic without any Telegram or storage-specific code, keeping
the business logic portable.
"""
