"""Shared helpers for kafka_batcher components."""
