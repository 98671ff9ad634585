"""Pricing math for constant-product pools."""

from cpamm.math.pricing import ConstantProductMath, constant_product, isqrt

__all__ = ["ConstantProductMath", "constant_product", "isqrt"]
