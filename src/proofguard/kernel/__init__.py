"""Core pipeline kernel: records, store, capture, verification, comparison."""
