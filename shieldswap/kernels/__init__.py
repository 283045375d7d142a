"""
Kernel layer.

Integer-only arithmetic shared by the core operations:
- `shieldswap/kernels/python/fixed_point.py`: checked u64/u128 helpers
- `shieldswap/kernels/python/lp_math.py`: share issuance / redemption
- `shieldswap/kernels/python/cpmm_swap.py`: fee-withheld constant-product pricing
"""
