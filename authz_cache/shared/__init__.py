"""Shared cross-cutting helpers (logging, datetime)."""
