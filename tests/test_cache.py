########################################################################
# File name: test_cache.py
# This file is part of: mucextinfo
#
# LICENSE
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this program.  If not, see
# <http://www.gnu.org/licenses/>.
#
########################################################################
import collections.abc
import threading
import time
import unittest

import mucextinfo.cache as cache


class TestLRUDict(unittest.TestCase):
    def setUp(self):
        self.d = cache.LRUDict()

    def tearDown(self):
        del self.d

    def test_is_mutable_mapping(self):
        self.assertIsInstance(
            self.d,
            collections.abc.MutableMapping,
        )

    def test_default_maxsize(self):
        self.assertEqual(self.d.maxsize, 1)

    def test_maxsize_from_constructor(self):
        self.assertEqual(cache.LRUDict(maxsize=10).maxsize, 10)
        self.assertIsNone(cache.LRUDict(maxsize=None).maxsize)

    def test_store_and_retrieve(self):
        key = object()
        value = object()
        self.d[key] = value

        self.assertEqual(self.d[key], value)

    def test_raise_KeyError_for_unknown_key(self):
        with self.assertRaises(KeyError):
            self.d[object()]

    def test_maxsize_rejects_non_positive_integers(self):
        with self.assertRaisesRegex(ValueError, "must be positive"):
            self.d.maxsize = 0

        with self.assertRaisesRegex(ValueError, "must be positive"):
            cache.LRUDict(maxsize=-1)

    def test_stored_None_is_distinct_from_missing_key(self):
        self.d["key"] = None
        self.assertIn("key", self.d)
        self.assertIsNone(self.d["key"])
        self.assertNotIn("other", self.d)

    def test_lru_purge_when_storing(self):
        size = 4
        self.d.maxsize = size
        keys = [object() for i in range(size + 2)]
        values = [object() for i in range(size + 2)]

        for k, v in zip(keys[:size], values[:size]):
            self.d[k] = v
            self.assertEqual(self.d[k], v)

        self.d[keys[size]] = values[size]

        with self.assertRaises(KeyError):
            self.d[keys[0]]

        # fetching the third key makes the second the least recently used
        self.d[keys[2]]

        self.d[keys[size + 1]] = values[size + 1]

        with self.assertRaises(KeyError):
            self.d[keys[1]]

        for i in [2, 3, 4, 5]:
            self.assertEqual(self.d[keys[i]], values[i])

    def test_contains_does_not_count_as_use(self):
        self.d.maxsize = 2
        self.d["a"] = 1
        self.d["b"] = 2
        self.d["b"]
        self.assertIn("a", self.d)

        self.d["c"] = 3

        self.assertNotIn("a", self.d)
        self.assertIn("b", self.d)

    def test_lru_purge_when_decreasing_maxsize(self):
        self.d.maxsize = 3
        self.d["a"] = 1
        self.d["b"] = 2
        self.d["c"] = 3
        self.d["a"]

        self.d.maxsize = 1

        self.assertEqual(["a"], list(self.d))

    def test_delete_and_pop(self):
        self.d.maxsize = 2
        self.d["a"] = 1
        self.d["b"] = 2

        del self.d["a"]
        self.assertNotIn("a", self.d)
        self.assertEqual(2, self.d.pop("b"))
        self.assertIsNone(self.d.pop("b", None))
        self.assertEqual(0, len(self.d))

        # links are still consistent
        self.d["c"] = 3
        self.d["d"] = 4
        self.d["e"] = 5
        self.assertSetEqual({"d", "e"}, set(self.d))

    def test_clear(self):
        self.d.maxsize = None
        for i in range(10):
            self.d[i] = i
        self.d.clear()
        self.assertEqual(0, len(self.d))
        self.d[1] = 1
        self.assertEqual(1, self.d[1])


class TestKeyedLock(unittest.TestCase):
    def setUp(self):
        self.locks = cache.KeyedLock()

    def test_locked_is_exclusive_per_key(self):
        inside = []
        overlaps = []
        barrier = threading.Barrier(4)

        def worker():
            barrier.wait()
            for _ in range(20):
                with self.locks.locked("room"):
                    inside.append(1)
                    if len(inside) > 1:
                        overlaps.append(len(inside))
                    time.sleep(0.0005)
                    inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual([], overlaps)

    def test_different_keys_do_not_block_each_other(self):
        acquired = threading.Event()

        def other():
            with self.locks.locked("b"):
                acquired.set()

        with self.locks.locked("a"):
            t = threading.Thread(target=other)
            t.start()
            self.assertTrue(acquired.wait(5))
        t.join()

    def test_same_key_blocks(self):
        acquired = threading.Event()

        def other():
            with self.locks.locked("a"):
                acquired.set()

        with self.locks.locked("a"):
            t = threading.Thread(target=other)
            t.start()
            self.assertFalse(acquired.wait(0.05))
        self.assertTrue(acquired.wait(5))
        t.join()

    def test_lock_entries_are_dropped_when_unused(self):
        self.assertEqual(0, len(self.locks))
        with self.locks.locked("a"):
            self.assertEqual(1, len(self.locks))
            with self.locks.locked("b"):
                self.assertEqual(2, len(self.locks))
        self.assertEqual(0, len(self.locks))

    def test_released_on_exception(self):
        with self.assertRaises(RuntimeError):
            with self.locks.locked("a"):
                raise RuntimeError()

        self.assertEqual(0, len(self.locks))
        with self.locks.locked("a"):
            pass
