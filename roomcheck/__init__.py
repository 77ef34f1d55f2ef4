"""Roomcheck: tenant room-condition inspections."""
