"""confctl: declarative package, file and desktop configuration."""

__version__ = "0.1.0"
