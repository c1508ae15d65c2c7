########################################################################
# File name: storage.py
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
:mod:`~mucextinfo.storage` --- Persistent extension data
########################################################

Extension data lives in a single table with one row per field value:

.. code-block:: sql

   mucextinfo(room, formtypename, varname, label, varvalue)

A row with ``varname`` set to ``NULL`` marks a form which exists but has no
fields (yet). Several rows with the same ``(room, formtypename, varname)``
make up a multi-valued field. No uniqueness is enforced by the schema;
:func:`rows_to_forms` builds a clean model out of whatever is stored.

.. autoclass:: ExtensionStore

.. autofunction:: rows_to_forms

Connection providers
====================

.. autoclass:: AbstractConnectionProvider

.. autoclass:: SQLiteConnectionProvider

.. data:: SCHEMA

   The ``CREATE`` statements for the table.

"""

import abc
import collections
import contextlib
import logging
import pathlib
import sqlite3
import threading

from .cache import KeyedLock, LRUDict
from .structs import ExtensionForm, Field, to_room_key, _blank_to_none


logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS mucextinfo (
    room TEXT NOT NULL,
    formtypename TEXT NOT NULL,
    varname TEXT,
    label TEXT,
    varvalue TEXT
);

CREATE INDEX IF NOT EXISTS idx_mucextinfo_room ON mucextinfo(room);
"""

SQL_ADD_FIELD = (
    "INSERT INTO mucextinfo (room, formtypename, varname, label, varvalue) "
    "VALUES (?, ?, ?, ?, ?)"
)
SQL_REMOVE_FORM = (
    "DELETE FROM mucextinfo WHERE room = ? AND formtypename = ?"
)
SQL_REMOVE_FIELD = (
    "DELETE FROM mucextinfo "
    "WHERE room = ? AND formtypename = ? AND varname = ?"
)
SQL_GET_ROOM_FORMS = (
    "SELECT formtypename, varname, label, varvalue FROM mucextinfo "
    "WHERE room = ? ORDER BY formtypename"
)


class AbstractConnectionProvider(metaclass=abc.ABCMeta):
    """
    Hand out database connections to the :class:`ExtensionStore`.

    .. automethod:: connection

    .. attribute:: errors

       Tuple of exception classes which indicate a failure of the backing
       store. The :class:`ExtensionStore` logs and absorbs these; any other
       exception propagates.
    """

    errors = (OSError,)

    @abc.abstractmethod
    def connection(self):
        """
        Return a context manager yielding a :pep:`249` connection using the
        ``qmark`` parameter style.

        The transaction must be committed when the ``with`` block is left
        normally and rolled back otherwise. The connection must be released
        on all exit paths.
        """


class SQLiteConnectionProvider(AbstractConnectionProvider):
    """
    Connection provider for an on-disk SQLite database.

    :param path: Path to the database file.
    :type path: :class:`pathlib.Path` or :class:`str`
    :param timeout: How long to wait for a lock held by another connection,
        in seconds.
    :type timeout: :class:`float`

    Each :meth:`connection` opens a fresh connection, so the provider can be
    used from any thread. For the same reason, ``":memory:"`` is not a useful
    `path`.

    .. automethod:: ensure_schema
    """

    errors = (sqlite3.Error, OSError)

    def __init__(self, path, *, timeout=10.0):
        super().__init__()
        self.path = pathlib.Path(path)
        self.timeout = timeout

    @contextlib.contextmanager
    def connection(self):
        conn = sqlite3.connect(str(self.path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self):
        """
        Create the database file and the table if they do not exist.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA)


def rows_to_forms(rows):
    """
    Group raw table rows of one room into :class:`.ExtensionForm` objects.

    :param rows: ``(formtypename, varname, label, varvalue)`` rows, all
        belonging to the same room.
    :type rows: iterable of tuples or :data:`None`
    :return: One form per distinct ``formtypename``, in order of first
        appearance, or :data:`None` if there are no rows at all.
    :rtype: :class:`tuple` of :class:`.ExtensionForm` or :data:`None`

    Rows without ``varname`` only make their form exist. All rows sharing a
    ``varname`` are condensed into one :class:`.Field`; its values are the
    non-``NULL`` values of those rows in row order, duplicates included. If
    the rows disagree on the label, the first non-blank label wins; which row
    that is depends on the order the database returns them in.

    Rows with an empty ``formtypename`` cannot form a valid form; they are
    logged and skipped, and the remaining rows are grouped as usual.

    The result for rows of more than one room is unspecified.
    """
    if rows is None:
        return None

    # formtypename -> varname -> [label, values]
    grouped = collections.OrderedDict()
    for form_type, var, label, value in rows:
        if not form_type:
            logger.warning(
                "ignoring row without formtypename (varname %r)",
                var,
            )
            continue

        fields = grouped.setdefault(form_type, collections.OrderedDict())
        if not var:
            continue

        entry = fields.setdefault(var, [None, []])
        if entry[0] is None:
            entry[0] = _blank_to_none(label)
        if value is not None:
            entry[1].append(value)

    if not grouped:
        return None

    return tuple(
        ExtensionForm(
            form_type,
            (
                Field(var, label, values)
                for var, (label, values) in fields.items()
            )
        )
        for form_type, fields in grouped.items()
    )


class ExtensionStore:
    """
    Persistent storage of extension forms per room, with a read-through
    cache.

    :param provider: Source of database connections.
    :type provider: :class:`AbstractConnectionProvider`
    :param cache_size: Maximum number of rooms kept in the cache, or
        :data:`None` for no limit.
    :type cache_size: :class:`int` or :data:`None`
    :param logger: Logger to use instead of the module logger.
    :type logger: :class:`logging.Logger`

    Every method accepts the room either as :class:`~.structs.JID` or as
    string and works on its bare form, so the resource part of an address
    never matters.

    Modifying the extension data:

    .. automethod:: add_form

    .. automethod:: remove_form

    .. automethod:: add_field

    .. automethod:: remove_field

    Reading the extension data:

    .. automethod:: get_forms

    Cache control:

    .. autoattribute:: cache_size
       :annotation: = 10000

    .. automethod:: purge

    .. automethod:: flush_cache

    .. autoattribute:: read_count

    All methods may be called from any thread. Calls for the same room are
    serialized: a lookup which misses the cache holds the room's lock across
    the database read and the cache update, and a modification holds it
    across the database write and the cache purge. Calls for different rooms
    do not block each other.

    Failures of the backing store (see
    :attr:`AbstractConnectionProvider.errors`) are logged and never raised.
    A failed read returns :data:`None` and is not cached. A failed write is
    lost; the cache entry of the room is purged nevertheless.
    """

    def __init__(self, provider, *, cache_size=10000, logger=None):
        super().__init__()
        self._provider = provider
        self.logger = logger or logging.getLogger(__name__)
        self._locks = KeyedLock()
        self._cache_guard = threading.Lock()
        self._cache = LRUDict(maxsize=cache_size)
        self._read_count = 0

    @property
    def cache_size(self):
        """
        Maximum number of rooms held in the cache. Excess rooms are evicted
        least recently used first.
        """
        return self._cache.maxsize

    @cache_size.setter
    def cache_size(self, value):
        with self._cache_guard:
            self._cache.maxsize = value

    @property
    def read_count(self):
        """
        Number of times the backing store has been read from.
        """
        return self._read_count

    def _purge_locked(self, room):
        with self._cache_guard:
            self._cache.pop(room, None)

    def purge(self, room):
        """
        Drop the cached data of `room`. The next :meth:`get_forms` for the
        room reads from the backing store.
        """
        room = to_room_key(room)
        with self._locks.locked(room):
            self._purge_locked(room)

    def flush_cache(self):
        """
        Drop the cached data of all rooms.
        """
        with self._cache_guard:
            self._cache.clear()

    def _write(self, room, sql, params, description):
        with self._locks.locked(room):
            try:
                with self._provider.connection() as conn:
                    conn.execute(sql, params)
            except self._provider.errors:
                self.logger.exception(
                    "failed to %s for room %s",
                    description, room,
                )
            finally:
                # purge instead of patching; the next read repopulates
                self._purge_locked(room)

    def add_form(self, room, form_type):
        """
        Add an empty form to `room`.

        :param room: The room to modify.
        :type room: :class:`~.structs.JID` or :class:`str`
        :param form_type: The ``FORM_TYPE`` of the form.
        :type form_type: :class:`str`
        :raises ValueError: if `form_type` is empty

        Adding a form which already exists has no visible effect, although
        another marker row is written.
        """
        if not form_type:
            raise ValueError("form_type must not be empty")
        room = to_room_key(room)
        self.logger.debug("adding form %r to room %s", form_type, room)
        self._write(
            room,
            SQL_ADD_FIELD,
            (str(room), form_type, None, None, None),
            "add form {!r}".format(form_type),
        )

    def remove_form(self, room, form_type):
        """
        Remove a form and all of its fields from `room`.

        Removing a form which does not exist is not an error.
        """
        room = to_room_key(room)
        self.logger.debug("removing form %r from room %s", form_type, room)
        self._write(
            room,
            SQL_REMOVE_FORM,
            (str(room), form_type),
            "remove form {!r}".format(form_type),
        )

    def add_field(self, room, form_type, var, label=None, value=None):
        """
        Add a field value to a form of `room`.

        :param room: The room to modify.
        :type room: :class:`~.structs.JID` or :class:`str`
        :param form_type: The ``FORM_TYPE`` of the form. The form is created
            if it does not exist.
        :type form_type: :class:`str`
        :param var: The name of the field.
        :type var: :class:`str`
        :param label: Optional human-readable label of the field.
        :type label: :class:`str` or :data:`None`
        :param value: Optional value of the field.
        :type value: :class:`str` or :data:`None`
        :raises ValueError: if `form_type` or `var` is empty

        If the form already has a field named `var`, `value` is added to its
        values, making it a multi-valued field. Should the labels given for
        the values differ, it is unspecified which one the field carries.

        Blank labels and values are stored as absent.
        """
        if not form_type:
            raise ValueError("form_type must not be empty")
        if not var:
            raise ValueError("var must not be empty")
        room = to_room_key(room)
        self.logger.debug("adding field %r to form %r of room %s",
                          var, form_type, room)
        self._write(
            room,
            SQL_ADD_FIELD,
            (str(room), form_type, var,
             _blank_to_none(label), _blank_to_none(value)),
            "add field {!r} to form {!r}".format(var, form_type),
        )

    def remove_field(self, room, form_type, var):
        """
        Remove all values of the field `var` from a form of `room`.

        Removing a field which does not exist is not an error. The form itself
        is kept only if it has other rows left.
        """
        room = to_room_key(room)
        self.logger.debug("removing field %r from form %r of room %s",
                          var, form_type, room)
        self._write(
            room,
            SQL_REMOVE_FIELD,
            (str(room), form_type, var),
            "remove field {!r} from form {!r}".format(var, form_type),
        )

    def _fetch_rows(self, room):
        with self._cache_guard:
            self._read_count += 1
        with self._provider.connection() as conn:
            cursor = conn.execute(SQL_GET_ROOM_FORMS, (str(room),))
            return [tuple(row) for row in cursor.fetchall()]

    def get_forms(self, room):
        """
        Return the extension forms of `room`.

        :param room: The room to look up.
        :type room: :class:`~.structs.JID` or :class:`str`
        :return: The forms of the room, or :data:`None` if nothing is stored
            for the room or the backing store failed.
        :rtype: :class:`tuple` of :class:`~.structs.ExtensionForm` or
            :data:`None`

        The result is served from the cache if possible. A room for which
        nothing is stored is cached as well and does not cause further reads.
        """
        room = to_room_key(room)
        self.logger.debug("getting forms for room %s", room)

        with self._locks.locked(room):
            with self._cache_guard:
                if room in self._cache:
                    self.logger.debug("cache hit: %s", room)
                    return self._cache[room]

            try:
                rows = self._fetch_rows(room)
            except self._provider.errors:
                self.logger.exception(
                    "failed to retrieve forms for room %s",
                    room,
                )
                return None

            result = rows_to_forms(rows)
            with self._cache_guard:
                self._cache[room] = result
            return result
