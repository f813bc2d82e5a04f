"""In-memory Azure API fakes, an in-memory cluster client and node-claim controllers."""

__version__ = "0.1.0"