"""Integration tests for the election, vote and vote processor services.

All tests require the services, RabbitMQ and PostgreSQL to be running.
"""
