"""Numba-compiled rendering kernels."""
