"""Per-source format adapters.

Every adapter module exposes ``parse(text) -> AdapterOutput``.
"""
