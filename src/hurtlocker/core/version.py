"""Version information for hurtlocker."""

__version__ = "1.0.0"
