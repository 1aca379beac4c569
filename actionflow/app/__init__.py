"""Application composition layer for the task client.

Controllers in this package wire view models, adapters, and use cases into
runnable operator workflows without placing business logic in views.
"""
