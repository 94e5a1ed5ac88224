"""Use cases that orchestrate tables, carts, orders and payments."""
