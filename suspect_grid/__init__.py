"""suspect-grid: match engine and host service for the suspect-grid board game."""

__version__ = "1.0.0"
