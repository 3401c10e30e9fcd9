"""tickdown: a countdown timer driven by a periodic tick source."""

__version__ = "0.1.0"
