"""Tests del MetricsStore: reemplazo atómico, merge y snapshots concurrentes."""

import threading

from pantheon_exporter.metrics import MetricsStore
from pantheon_exporter.metrics.rwlock import ReadWriteLock

from conftest import make_sample, make_site


class TestReplaceAndSnapshot:

    def test_replace_all_swaps_site_set(self, store):
        store.replace_all([make_site("a", "one"), make_site("a", "two")])
        store.replace_all([make_site("a", "three")])

        names = [s.site_name for s in store.snapshot()]
        assert names == ["three"]
        assert len(store) == 1

    def test_snapshot_is_independent_list(self, store):
        store.replace_all([make_site("a", "one")])
        snap = store.snapshot()
        snap.append(make_site("a", "intruder"))

        assert len(store) == 1

    def test_snapshot_unaffected_by_later_merge(self, store):
        store.replace_all([make_site("a", "one", {"100": make_sample(100)})])
        snap = store.snapshot()

        store.merge_site_samples("a", "one", {"200": make_sample(200)})

        assert set(snap[0].samples) == {"100"}
        assert set(store.snapshot()[0].samples) == {"100", "200"}

    def test_empty_store(self):
        assert MetricsStore().snapshot() == []


class TestMergeSiteSamples:

    def test_merge_adds_new_timestamps(self, store):
        store.replace_all([make_site("a", "one", {"100": make_sample(100)})])

        merged = store.merge_site_samples("a", "one", {"200": make_sample(200)})

        assert merged is True
        assert set(store.snapshot()[0].samples) == {"100", "200"}

    def test_merge_overwrites_same_timestamp(self, store):
        store.replace_all([make_site("a", "one", {"100": make_sample(100, visits=1)})])

        store.merge_site_samples("a", "one", {"100": make_sample(100, visits=7)})

        samples = store.snapshot()[0].samples
        assert len(samples) == 1
        assert samples["100"].visits == 7

    def test_merge_is_idempotent(self, store):
        store.replace_all([make_site("a", "one")])
        batch = {"100": make_sample(100, visits=3)}

        store.merge_site_samples("a", "one", batch)
        store.merge_site_samples("a", "one", batch)

        samples = store.snapshot()[0].samples
        assert list(samples) == ["100"]
        assert samples["100"].visits == 3

    def test_merge_unknown_site_is_noop(self, store):
        store.replace_all([make_site("a", "one")])

        merged = store.merge_site_samples("a", "missing", {"100": make_sample(100)})

        assert merged is False
        assert store.snapshot()[0].samples == {}

    def test_merge_matches_account_and_name(self, store):
        store.replace_all([make_site("a", "same"), make_site("b", "same")])

        store.merge_site_samples("b", "same", {"100": make_sample(100)})

        by_account = {s.account_id: s for s in store.snapshot()}
        assert by_account["a"].samples == {}
        assert list(by_account["b"].samples) == ["100"]


class TestReplaceCarryOver:

    def test_samples_of_persisting_keys_kept(self, store):
        store.replace_all([make_site("a", "one", {"100": make_sample(100)}), make_site("a", "two")])

        store.replace_all([make_site("a", "one"), make_site("a", "three")], carry_over=True)

        by_name = {s.site_name: s for s in store.snapshot()}
        assert set(by_name) == {"one", "three"}
        assert list(by_name["one"].samples) == ["100"]
        assert by_name["three"].samples == {}

    def test_without_carry_over_history_is_dropped(self, store):
        store.replace_all([make_site("a", "one", {"100": make_sample(100)})])

        store.replace_all([make_site("a", "one")])

        assert store.snapshot()[0].samples == {}

    def test_incoming_metadata_wins(self, store):
        store.replace_all([make_site("a", "one", {"100": make_sample(100)}, site_id="old-uuid")])

        store.replace_all([make_site("a", "one", site_id="new-uuid")], carry_over=True)

        site = store.snapshot()[0]
        assert site.site_id == "new-uuid"
        assert list(site.samples) == ["100"]


class TestConcurrency:

    def test_snapshot_never_sees_partial_replace(self, store):
        old = [make_site("old", f"s{i}") for i in range(50)]
        new = [make_site("new", f"s{i}") for i in range(50)]
        store.replace_all(old)

        stop = threading.Event()
        errors = []

        def writer():
            flip = False
            while not stop.is_set():
                store.replace_all(new if flip else old)
                flip = not flip

        def reader():
            for _ in range(500):
                accounts = {s.account_id for s in store.snapshot()}
                if len(accounts) != 1:
                    errors.append(accounts)

        w = threading.Thread(target=writer)
        readers = [threading.Thread(target=reader) for _ in range(4)]
        w.start()
        for r in readers:
            r.start()
        for r in readers:
            r.join()
        stop.set()
        w.join()

        assert errors == []

    def test_concurrent_merges_are_not_lost(self, store):
        store.replace_all([make_site("a", "one")])

        def merge(offset):
            for i in range(100):
                ts = str(offset + i)
                store.merge_site_samples("a", "one", {ts: make_sample(offset + i)})

        threads = [threading.Thread(target=merge, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.snapshot()[0].samples) == 400


class TestReadWriteLock:

    def test_readers_share_lock(self):
        lock = ReadWriteLock()
        lock.acquire_read()
        acquired = threading.Event()

        def second_reader():
            with lock.read_locked():
                acquired.set()

        t = threading.Thread(target=second_reader)
        t.start()
        assert acquired.wait(timeout=1.0)
        t.join()
        lock.release_read()

    def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        lock.acquire_read()
        written = threading.Event()

        def writer():
            with lock.write_locked():
                written.set()

        t = threading.Thread(target=writer)
        t.start()
        assert not written.wait(timeout=0.1)

        lock.release_read()
        assert written.wait(timeout=1.0)
        t.join()
