"""voice2art - dictate an artistic description and turn it into an art prompt."""

__version__ = "0.1.0"
