"""Serverless utilities.

Reusable building blocks for AWS Lambda functions: a DynamoDB document
client with a concurrent batch writer, API Gateway response formatters,
structured logging, S3 presigned URLs and date helpers.
"""
