"""Compiles declarative app specs into runnable project trees."""

__version__ = "0.1.0"
