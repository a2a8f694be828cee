"""Common Lambda utilities.

Provides configuration, logging, error conversion and API Gateway
response helpers shared by the clients.
"""
