import io
import os
import tempfile
import unittest
from datetime import datetime, timezone

from botocore.exceptions import ClientError
import requests

from s3_explorer.models import UploadTarget
from s3_explorer.services import S3StorageService, download_filename, guess_content_type


class FakeS3Client:
    def __init__(self, list_responses=None, get_responses=None, delete_errors=None):
        self.list_responses = iter(list_responses or [])
        self.list_objects_kwargs = []
        self.get_responses = get_responses or {}
        self.delete_errors = delete_errors or {}
        self.delete_object_calls = []
        self.presigned_url_calls = []

    def list_objects_v2(self, **kwargs):
        self.list_objects_kwargs.append(kwargs)
        response = next(self.list_responses)
        if isinstance(response, Exception):
            raise response
        return response

    def generate_presigned_url(self, client_method, Params=None, ExpiresIn=3600):
        self.presigned_url_calls.append(
            {"method": client_method, "params": Params or {}, "expires_in": ExpiresIn}
        )
        return f"https://signed.example/{(Params or {}).get('Key')}"

    def delete_object(self, **kwargs):
        self.delete_object_calls.append((kwargs["Bucket"], kwargs["Key"]))
        error = self.delete_errors.get(kwargs["Key"])
        if error:
            raise error

    def get_object(self, **kwargs):
        return self.get_responses[kwargs["Key"]]


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeHttpSession:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.put_calls = []

    def put(self, url, data=None, headers=None, timeout=None):
        self.put_calls.append(
            {"url": url, "body": data.read(), "headers": headers, "timeout": timeout}
        )
        return FakeResponse(self.status_code)


class S3StorageServiceTests(unittest.TestCase):
    def _service(self, client, http=None):
        self.factory_calls = []

        def factory(*args, **kwargs):
            self.factory_calls.append((args, kwargs))
            return client

        return S3StorageService(
            "bucket-one",
            endpoint_url="https://example.com",
            access_key="access",
            secret_key="secret",
            client_factory=factory,
            http_session=http or FakeHttpSession(),
            request_timeout=5,
        )

    def test_list_children_uses_delimiter_and_prefix(self):
        modified = datetime(2024, 1, 2, tzinfo=timezone.utc)
        client = FakeS3Client(
            [
                {
                    "Contents": [{"Key": "docs/readme.txt", "Size": 120, "LastModified": modified}],
                    "CommonPrefixes": [{"Prefix": "docs/img/"}],
                    "IsTruncated": False,
                }
            ]
        )
        service = self._service(client)

        listing = service.list_children("docs")

        self.assertEqual("docs/", listing.prefix)
        self.assertEqual(["docs/readme.txt"], listing.keys)
        self.assertEqual(120, listing.files[0].size)
        self.assertEqual(modified, listing.files[0].last_modified)
        self.assertEqual(("docs/img/",), listing.sub_prefixes)
        self.assertEqual(
            {"Bucket": "bucket-one", "Delimiter": "/", "Prefix": "docs/"},
            client.list_objects_kwargs[0],
        )
        self.assertEqual("s3", self.factory_calls[0][0][0])
        self.assertEqual("https://example.com", self.factory_calls[0][1]["endpoint_url"])

    def test_list_children_at_root_omits_prefix(self):
        client = FakeS3Client([{"IsTruncated": False}])
        service = self._service(client)

        listing = service.list_children("")

        self.assertTrue(listing.is_empty)
        self.assertNotIn("Prefix", client.list_objects_kwargs[0])

    def test_list_children_follows_continuation_tokens(self):
        client = FakeS3Client(
            [
                {"Contents": [{"Key": "a.txt", "Size": 1}], "IsTruncated": True, "NextContinuationToken": "t-1"},
                {"CommonPrefixes": [{"Prefix": "b/"}], "IsTruncated": False},
            ]
        )
        service = self._service(client)

        listing = service.list_children("")

        self.assertEqual(["a.txt"], listing.keys)
        self.assertEqual(("b/",), listing.sub_prefixes)
        self.assertEqual("t-1", client.list_objects_kwargs[1]["ContinuationToken"])
        self.assertEqual(1, len(self.factory_calls))

    def test_list_children_propagates_client_errors(self):
        error = ClientError({"Error": {"Code": "AccessDenied", "Message": "Denied"}}, "ListObjectsV2")
        service = self._service(FakeS3Client([error]))

        with self.assertRaises(ClientError):
            service.list_children("docs/")

    def test_issue_upload_target_presigns_put(self):
        client = FakeS3Client()
        service = self._service(client)

        target = service.issue_upload_target("docs/notes.txt", expires_in=600, content_type="text/plain")

        self.assertEqual("https://signed.example/docs/notes.txt", target.url)
        self.assertEqual(600, target.expires_in)
        self.assertEqual({"Content-Type": "text/plain"}, target.headers)
        self.assertEqual(
            {
                "method": "put_object",
                "params": {"Bucket": "bucket-one", "Key": "docs/notes.txt", "ContentType": "text/plain"},
                "expires_in": 600,
            },
            client.presigned_url_calls[0],
        )

    def test_issue_upload_target_validates_inputs(self):
        service = self._service(FakeS3Client())

        with self.assertRaises(ValueError):
            service.issue_upload_target("")
        with self.assertRaises(ValueError):
            service.issue_upload_target("a.txt", expires_in=0)

    def test_upload_to_target_puts_file_body(self):
        http = FakeHttpSession()
        service = self._service(FakeS3Client(), http)
        target = UploadTarget(key="a.txt", url="https://signed", expires_in=60, headers={"Content-Type": "text/plain"})
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "a.txt")
            with open(path, "wb") as handle:
                handle.write(b"content")

            service.upload_to_target(target, path)

        self.assertEqual(
            {"url": "https://signed", "body": b"content", "headers": {"Content-Type": "text/plain"}, "timeout": 5},
            http.put_calls[0],
        )

    def test_upload_to_target_raises_on_rejected_transfer(self):
        service = self._service(FakeS3Client(), FakeHttpSession(status_code=403))
        target = UploadTarget(key="a.txt", url="https://signed", expires_in=60)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "a.txt")
            with open(path, "wb") as handle:
                handle.write(b"content")

            with self.assertRaises(requests.HTTPError):
                service.upload_to_target(target, path)

    def test_delete_object_removes_target(self):
        client = FakeS3Client()
        service = self._service(client)

        service.delete_object("docs/readme.txt")

        self.assertEqual([("bucket-one", "docs/readme.txt")], client.delete_object_calls)
        with self.assertRaises(ValueError):
            service.delete_object(" ")

    def test_fetch_object_passes_stream_through(self):
        body = io.BytesIO(b"hello")
        client = FakeS3Client(get_responses={"docs/readme.txt": {"Body": body, "ContentType": "text/plain"}})
        service = self._service(client)

        download = service.fetch_object("docs/readme.txt")

        self.assertIs(body, download.body)
        self.assertEqual("text/plain", download.content_type)
        self.assertEqual("readme.txt", download.filename)

    def test_fetch_object_defaults_content_type(self):
        client = FakeS3Client(get_responses={"blob": {"Body": io.BytesIO()}})

        download = self._service(client).fetch_object("blob")

        self.assertEqual("application/octet-stream", download.content_type)

    def test_requires_bucket_name(self):
        with self.assertRaises(ValueError):
            S3StorageService("", client_factory=lambda *_, **__: None, http_session=FakeHttpSession())


class HelperTests(unittest.TestCase):
    def test_download_filename(self):
        self.assertEqual("c.txt", download_filename("a/b/c.txt"))
        self.assertEqual("b", download_filename("a/b/"))
        self.assertEqual("download", download_filename("/"))

    def test_guess_content_type(self):
        self.assertEqual("text/plain", guess_content_type("notes.txt"))
        self.assertIsNone(guess_content_type("no-extension"))


if __name__ == "__main__":
    unittest.main()
