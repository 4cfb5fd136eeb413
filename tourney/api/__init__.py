"""API routers."""

from tourney.api import admin, tournaments, users, wallet

__all__ = ["admin", "tournaments", "users", "wallet"]
