"""Pydantic models for inventory, bookings and calendar interchange."""
