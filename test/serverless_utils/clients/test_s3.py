from test.base import AwsBaseTest
from urllib.parse import parse_qs, urlparse

import boto3
from pytest import mark, param, raises

from serverless_utils.clients.s3 import get_signed_url


class GetSignedUrlTests(AwsBaseTest):
    def setUp(self) -> None:
        super().setUp()
        self.start_aws_mock()
        self.s3 = boto3.client("s3", region_name=self.DEFAULT_REGION)

    def test__get_signed_url__signs_get_object(self):
        url = get_signed_url("my-bucket", "path/to/file.json", client=self.s3)

        parsed = urlparse(url)
        self.assertIn("my-bucket", parsed.netloc + parsed.path)
        self.assertTrue(parsed.path.endswith("path/to/file.json"))
        query = parse_qs(parsed.query)
        self.assertEqual(query["X-Amz-Expires"], ["3600"])

    def test__get_signed_url__custom_expiry(self):
        url = get_signed_url("my-bucket", "key", expires_in=60, client=self.s3)

        self.assertEqual(parse_qs(urlparse(url).query)["X-Amz-Expires"], ["60"])

    def test__get_signed_url__uses_shared_client_by_default(self):
        mock_get_s3_client = self.create_patch("serverless_utils.clients.s3.get_s3_client")
        mock_get_s3_client.return_value.generate_presigned_url.return_value = "https://signed"

        self.assertEqual(get_signed_url("b", "k"), "https://signed")
        mock_get_s3_client.return_value.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "b", "Key": "k"}, ExpiresIn=3600
        )


@mark.parametrize(
    "bucket, key, expires_in",
    [
        param("", "key", 3600, id="no bucket"),
        param("bucket", "", 3600, id="no key"),
        param("bucket", "key", 0, id="no lifetime"),
    ],
)
def test__get_signed_url__invalid_arguments__raises(bucket, key, expires_in):
    with raises(ValueError):
        get_signed_url(bucket, key, expires_in=expires_in, client=object())
