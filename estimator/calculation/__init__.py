"""
calculation: Formula-Driven Cost Engine
=======================================

- Expression evaluation with a safe arithmetic parser (expression.py)
- Tagged formula types and raw-config parsing (types.py)
- Formula dispatcher and structured strategies (formulas/)
- Per-system service support detection (support.py)
- Variable context construction (variables.py)
- Single- and multi-system aggregation (engine.py)
"""
