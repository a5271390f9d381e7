"""
On-hand inventory.

Models:
- StockRecord (available quantity per store per product)

Rows are decremented by reservations and incremented by inventory sync;
both paths go through single conditional UPDATE statements.
"""
