import os
from unittest import mock

import boto3
import pytest
from moto import mock_aws

from test.base import TEST_TABLE_NAME


@pytest.fixture(scope="function")
def aws_credentials_fixture():
    """Set testing credentials for mocked AWS resources and
    avoid accidentally hitting anything live with boto3.
    """
    # Clear os.environ dict (will be restored after fixture is finished)
    with mock.patch.dict(os.environ, clear=True):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
        os.environ["AWS_DEFAULT_REGION"] = "us-west-2"
        os.environ["AWS_REGION"] = "us-west-2"
        yield


@pytest.fixture(scope="function")
def dynamodb_client_fixture(aws_credentials_fixture):
    """A moto backed DynamoDB client with an empty ``test-table`` (hash key ``pk``)."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="us-west-2")
        client.create_table(
            TableName=TEST_TABLE_NAME,
            KeySchema=[{"AttributeName": "pk", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "pk", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        yield client
