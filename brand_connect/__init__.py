"""
Brand Connect marketplace core.

Identity resolution, creative approval gating, the booking lifecycle and
its conversation / notification side effects, running against any
record store and auth provider that honour the contracts in
``brand_connect.store.base``.
"""
