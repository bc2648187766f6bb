import os
import unittest
from unittest.mock import Mock, patch

from botocore.exceptions import ClientError

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")
os.environ.setdefault("S3_BUCKET", "test")

from app.services.s3_storage import S3Storage, build_object_key, delete_objects_quietly


class S3StorageTests(unittest.TestCase):
    def test_object_key_is_prefixed_and_sanitized(self):
        key = build_object_key("/properties/abc/", "my photo (1).png")
        self.assertTrue(key.startswith("properties/abc/"))
        self.assertTrue(key.endswith("-my_photo_1_.png"))
        self.assertNotIn(" ", key)

    def test_missing_bucket_is_created_once(self):
        client = Mock()
        client.head_bucket.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadBucket")
        with patch("app.services.s3_storage.boto3.client", return_value=client):
            storage = S3Storage()
        storage.put_object("properties/x/a.png", b"data", "image/png")
        storage.put_object("properties/x/b.png", b"data", "image/png")
        client.create_bucket.assert_called_once()
        self.assertEqual(client.put_object.call_count, 2)
        self.assertEqual(client.put_object.call_args.kwargs["ContentType"], "image/png")

    def test_delete_objects_quietly_continues_after_errors(self):
        storage = Mock()
        storage.delete_object.side_effect = [ClientError({"Error": {"Code": "500"}}, "DeleteObject"), None]
        delete_objects_quietly(storage, ["a", "b"])
        self.assertEqual(storage.delete_object.call_count, 2)


if __name__ == "__main__":
    unittest.main()
