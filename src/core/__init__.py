"""
Core: fixed-point math, доменные модели, ошибки и JSON Schema контракты.

Не зависит от ledger, markets и risk engine.
"""
