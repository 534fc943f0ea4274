"""SeedSync - pulls finished downloads from a seedbox into a home library."""

__version__ = "0.1.0"
