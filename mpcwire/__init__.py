"""HTTP transport for two-party secure computation: a WSGI contributor server and an evaluator client."""

__version__ = "0.3.0"