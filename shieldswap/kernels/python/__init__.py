"""
Production Python kernels.

These modules are designed to be:
- deterministic (integer-only, floor rounding),
- easy to audit (explicit intermediate variables in typed results),
- small surface-area (pure functions, no logging, no I/O).
"""
