"""
Shared kernel: configuration, structured logging, correlation, performance
tracking and database bootstrap used by the data-access layer.
"""
