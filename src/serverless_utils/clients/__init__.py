"""AWS service clients.

Thin wrappers around boto3 clients for DynamoDB and S3.
"""
