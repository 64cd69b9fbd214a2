from __future__ import annotations


class InvalidInput(ValueError):
    """Rejected input. ``field`` names what failed validation."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message
