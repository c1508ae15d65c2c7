########################################################################
# File name: cache.py
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
"""
:mod:`~mucextinfo.cache` --- Utilities for implementing caches
##############################################################

.. autoclass:: LRUDict

.. autoclass:: KeyedLock

"""

import collections.abc
import contextlib
import threading


class Node:
    __slots__ = ("prev", "next_", "key", "value")


def _init_linked_list():
    root = Node()
    root.prev = root
    root.next_ = root
    root.key = None
    root.value = None
    return root


def _remove_node(node):
    node.next_.prev = node.prev
    node.prev.next_ = node.next_
    return node


def _insert_node(before, new_node):
    new_node.next_ = before.next_
    new_node.next_.prev = new_node
    new_node.prev = before
    before.next_ = new_node


class LRUDict(collections.abc.MutableMapping):
    """
    Size-restricted dictionary with Least Recently Used expiry policy.

    When the :attr:`maxsize` is exceeded, as many entries as needed to get
    below the :attr:`maxsize` are removed from the dict. Least recently used
    entries are purged first. Setting an entry does *not* count as use!

    The dictionary is not thread-safe by itself; the
    :class:`~mucextinfo.storage.ExtensionStore` guards it with a mutex.

    .. autoattribute:: maxsize
    """

    def __init__(self, maxsize=1):
        super().__init__()
        self.__links = {}
        self.__root = _init_linked_list()
        self.__maxsize = None
        self.maxsize = maxsize

    def _purge(self):
        if self.__maxsize is None:
            return

        while len(self.__links) > self.__maxsize:
            link = _remove_node(self.__root.prev)
            del self.__links[link.key]

    @property
    def maxsize(self):
        """
        Maximum size of the cache. Changing this property purges overhanging
        entries immediately.

        If set to :data:`None`, no limit on the number of entries is imposed.
        """
        return self.__maxsize

    @maxsize.setter
    def maxsize(self, value):
        if value is not None and value <= 0:
            raise ValueError("maxsize must be positive integer or None")
        self.__maxsize = value
        self._purge()

    def __len__(self):
        return len(self.__links)

    def __iter__(self):
        return iter(self.__links)

    def __contains__(self, key):
        # membership test must not count as use
        return key in self.__links

    def __setitem__(self, key, value):
        try:
            self.__links[key].value = value
        except KeyError:
            link = Node()
            link.key = key
            link.value = value
            self.__links[key] = link
            _insert_node(self.__root, link)
            self._purge()

    def __getitem__(self, key):
        link = self.__links[key]
        _remove_node(link)
        _insert_node(self.__root, link)
        return link.value

    def __delitem__(self, key):
        link = self.__links.pop(key)
        _remove_node(link)

    def clear(self):
        self.__links.clear()
        self.__root = _init_linked_list()


class KeyedLock:
    """
    A family of mutexes, one per hashable key.

    Code holding the lock for one key excludes other threads from the same key
    only; different keys never contend with each other beyond the brief
    bookkeeping step.

    Lock objects exist only while some thread holds or waits for them, so the
    number of keys ever used does not matter for memory usage.

    .. automethod:: locked

    .. automethod:: __len__
    """

    def __init__(self):
        super().__init__()
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks = {}

    def _acquire_entry(self, key):
        with self._guard:
            try:
                entry = self._locks[key]
            except KeyError:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        return entry

    def _release_entry(self, key, entry):
        with self._guard:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextlib.contextmanager
    def locked(self, key):
        """
        Context manager which holds the lock for `key` for the duration of
        the ``with`` block.
        """
        entry = self._acquire_entry(key)
        try:
            with entry[0]:
                yield
        finally:
            self._release_entry(key, entry)

    def __len__(self):
        """
        Number of keys which are currently held or waited for.
        """
        with self._guard:
            return len(self._locks)
