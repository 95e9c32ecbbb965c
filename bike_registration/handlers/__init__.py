"""Telegram handlers for the registration flow."""
