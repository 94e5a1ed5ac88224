import os

# Tests run against in-memory SQLite with the background sweeper disabled.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "true")
os.environ.setdefault("SECRET_KEY", "x" * 32)
os.environ.setdefault("PAYMENT_GATEWAY", "stub")
os.environ.setdefault("CART_SWEEP_INTERVAL_SECS", "0")
