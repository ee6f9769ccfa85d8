import threading
import time
import unittest

from fakes import FakeStorage

from s3_explorer.cache import FolderCache
from s3_explorer.errors import BackendUnavailable
from s3_explorer.listing import ListingClient
from s3_explorer.models import Listing


class ListingClientTests(unittest.TestCase):
    def setUp(self):
        self.storage = FakeStorage(["docs/readme.txt", "docs/img/logo.png", "top.txt"])
        self.cache = FolderCache()
        self.client = ListingClient(self.storage, self.cache)

    def _fetch_in_thread(self, prefix, results):
        def run():
            try:
                results.append(self.client.fetch_children(prefix))
            except BackendUnavailable as exc:
                results.append(exc)

        thread = threading.Thread(target=run)
        thread.start()
        return thread

    def test_fetch_normalizes_and_caches_listing(self):
        listing = self.client.fetch_children("docs")

        self.assertEqual(["docs/"], self.storage.list_calls)
        self.assertEqual("docs/", listing.prefix)
        self.assertEqual(["docs/readme.txt"], listing.keys)
        self.assertEqual(("docs/img/",), listing.sub_prefixes)
        self.assertIs(listing, self.cache.get("docs/"))

    def test_concurrent_fetches_share_one_backend_call(self):
        release = self.storage.gate_listing("docs/")
        results = []
        first = self._fetch_in_thread("docs/", results)
        self.assertTrue(self.storage.list_started["docs/"].wait(5))
        self.assertTrue(self.client.is_in_flight("docs/"))
        second = self._fetch_in_thread("docs/", results)
        time.sleep(0.2)
        release.set()
        first.join(5)
        second.join(5)

        self.assertEqual(1, self.storage.list_calls_for("docs/"))
        self.assertEqual(2, len(results))
        self.assertIs(results[0], results[1])
        self.assertFalse(self.client.is_in_flight("docs/"))

    def test_waiting_callers_receive_the_failure(self):
        self.storage.failing_lists.add("docs/")
        release = self.storage.gate_listing("docs/")
        results = []
        first = self._fetch_in_thread("docs/", results)
        self.assertTrue(self.storage.list_started["docs/"].wait(5))
        second = self._fetch_in_thread("docs/", results)
        time.sleep(0.2)
        release.set()
        first.join(5)
        second.join(5)

        self.assertEqual(1, self.storage.list_calls_for("docs/"))
        self.assertEqual(2, len(results))
        for result in results:
            self.assertIsInstance(result, BackendUnavailable)
            self.assertEqual("docs/", result.target)

    def test_failure_leaves_previous_entry_untouched(self):
        previous = Listing(prefix="docs/")
        self.cache.put("docs/", previous)
        self.storage.failing_lists.add("docs/")

        with self.assertRaises(BackendUnavailable) as ctx:
            self.client.fetch_children("docs/")

        self.assertIs(previous, self.cache.get("docs/"))
        self.assertIn("docs/", str(ctx.exception))
        self.assertFalse(self.client.is_in_flight("docs/"))

    def test_fetch_invalidated_while_running_is_fetched_again(self):
        release = self.storage.gate_listing("docs/")
        results = []
        thread = self._fetch_in_thread("docs/", results)
        self.assertTrue(self.storage.list_started["docs/"].wait(5))

        self.storage.objects.pop("docs/readme.txt")
        self.cache.invalidate("docs/")
        release.set()
        thread.join(5)

        self.assertEqual(2, self.storage.list_calls_for("docs/"))
        self.assertIs(results[0], self.cache.get("docs/"))
        self.assertEqual([], results[0].keys)

    def test_fetch_after_invalidation_does_not_join_stale_request(self):
        release = self.storage.gate_listing("docs/")
        results = []
        stale = self._fetch_in_thread("docs/", results)
        self.assertTrue(self.storage.list_started["docs/"].wait(5))
        self.cache.invalidate("docs/")
        fresh = self._fetch_in_thread("docs/", results)
        time.sleep(0.2)
        release.set()
        stale.join(5)
        fresh.join(5)

        self.assertEqual(2, self.storage.list_calls_for("docs/"))
        self.assertTrue(self.cache.has("docs/"))


if __name__ == "__main__":
    unittest.main()
