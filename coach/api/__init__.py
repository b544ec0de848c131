"""JSON HTTP surface."""
