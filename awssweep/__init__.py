"""AWS Resource Sweeper - declarative, dependency-aware cleanup of AWS resources."""

__version__ = "0.1.0"
