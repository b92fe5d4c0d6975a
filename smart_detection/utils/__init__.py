"""
Shared utilities: logging, configuration, exceptions and engine backends
"""
