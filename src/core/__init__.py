"""
Core domain models, decimal primitives, and contracts.

This module contains the foundational building blocks that are independent
of the solver itself (precision context, pool models, JSON contracts).
"""
