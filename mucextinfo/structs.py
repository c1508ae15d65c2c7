########################################################################
# File name: structs.py
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
:mod:`~mucextinfo.structs` --- Value types
##########################################

Addresses
=========

.. autoclass:: JID(localpart, domain, resource, *, strict=True)

.. autofunction:: to_room_key

Extension data
==============

These are the types in which extension data is held by the
:class:`~mucextinfo.storage.ExtensionStore`. They are deliberately separate
from the :mod:`mucextinfo.forms` types: an :class:`ExtensionForm` is what the
operator configured for a room, a :class:`~mucextinfo.forms.Data` is what goes
out in a discovery response.

.. autoclass:: Field(var, label=None, values=())

.. autoclass:: ExtensionForm(form_type, fields=())

"""

import collections

from .stringprep import nodeprep, resourceprep, nameprep


class JID(collections.namedtuple("JID", ["localpart", "domain", "resource"])):
    """
    Represent a :term:`Jabber ID (JID) <Jabber ID>`.

    :param localpart: The part in front of the ``@`` of the JID, or
        :data:`None` if the localpart shall be omitted.
    :type localpart: :class:`str` or :data:`None`
    :param domain: The domain of the JID. This is the only mandatory part of
        a JID.
    :type domain: :class:`str`
    :param resource: The resource part of the JID or :data:`None` to omit the
        resource part.
    :type resource: :class:`str` or :data:`None`
    :param strict: Reject code points unassigned in Unicode 3.2.
    :type strict: :class:`bool`
    :raises ValueError: if the JID composed of the given parts is invalid

    All parts are stringprep'd on construction, so two JIDs which address the
    same entity compare equal. This is what makes :class:`JID` usable as cache
    key for rooms.

    .. automethod:: fromstr

    .. automethod:: bare

    .. automethod:: replace(*, [localpart], [domain], [resource])

    .. autoattribute:: is_bare
    """

    __slots__ = []

    def __new__(cls, localpart, domain, resource, *, strict=True):
        if localpart:
            localpart = nodeprep(localpart, allow_unassigned=not strict)
        if domain is not None:
            domain = nameprep(domain, allow_unassigned=not strict)
        if resource:
            resource = resourceprep(resource, allow_unassigned=not strict)

        if not domain:
            raise ValueError("domain must not be empty or None")
        if len(domain.encode("utf-8")) > 1023:
            raise ValueError("domain too long")
        if localpart is not None:
            if not localpart:
                raise ValueError("localpart must not be empty")
            if len(localpart.encode("utf-8")) > 1023:
                raise ValueError("localpart too long")
        if resource is not None:
            if not resource:
                raise ValueError("resource must not be empty")
            if len(resource.encode("utf-8")) > 1023:
                raise ValueError("resource too long")

        return super().__new__(cls, localpart, domain, resource)

    def replace(self, *, strict=True, **kwargs):
        """
        Construct a new :class:`JID` from this one, overriding the parts given
        as keyword arguments.

        :raises: See :class:`JID`
        :rtype: :class:`JID`
        """
        unknown = set(kwargs) - set(self._fields)
        if unknown:
            raise TypeError("replace() got an unexpected keyword argument"
                            " {!r}".format(next(iter(unknown))))

        parts = self._asdict()
        parts.update(kwargs)
        return type(self)(
            parts["localpart"],
            parts["domain"],
            parts["resource"],
            strict=strict,
        )

    def __str__(self):
        result = self.domain
        if self.localpart:
            result = self.localpart + "@" + result
        if self.resource:
            result += "/" + self.resource
        return result

    def bare(self):
        """
        Return this JID with the :attr:`resource` set to :data:`None`.
        """
        if self.resource is None:
            return self
        return self.replace(resource=None)

    @property
    def is_bare(self):
        """
        :data:`True` if the JID is bare, i.e. has an empty :attr:`resource`
        part.
        """
        return not self.resource

    @classmethod
    def fromstr(cls, s, *, strict=True):
        """
        Construct a JID out of a string containing it.

        :param s: The string to parse.
        :type s: :class:`str`
        :param strict: Whether to enable strict parsing.
        :type strict: :class:`bool`
        :raises: See :class:`JID`
        :rtype: :class:`JID`
        """
        nodedomain, sep, resource = s.partition("/")
        if not sep:
            resource = None

        localpart, sep, domain = nodedomain.partition("@")
        if not sep:
            domain = localpart
            localpart = None
        return cls(localpart, domain, resource, strict=strict)


def to_room_key(room):
    """
    Normalize `room` to the bare :class:`JID` used as cache and storage key.

    :param room: The room address.
    :type room: :class:`JID` or :class:`str`
    :rtype: :class:`JID`
    """
    if not isinstance(room, JID):
        room = JID.fromstr(room)
    return room.bare()


def _blank_to_none(s):
    if s is None or not s.strip():
        return None
    return s


class Field(collections.namedtuple("Field", ["var", "label", "values"])):
    """
    A named, optionally labelled and possibly multi-valued piece of extension
    data.

    :param var: The field variable name. Must not be empty.
    :type var: :class:`str`
    :param label: Human readable label; blank labels are stored as
        :data:`None`.
    :type label: :class:`str` or :data:`None`
    :param values: The values of the field. :data:`None` entries are dropped.
    :type values: iterable of :class:`str`
    :raises ValueError: if `var` is empty

    Instances are immutable and compare structurally.

    .. automethod:: with_values
    """

    __slots__ = []

    def __new__(cls, var, label=None, values=()):
        if not var:
            raise ValueError("var must not be empty")
        return super().__new__(
            cls,
            var,
            _blank_to_none(label),
            tuple(value for value in values if value is not None),
        )

    def with_values(self, values):
        """
        Return a copy of this field with `values` appended to its values.
        """
        return type(self)(self.var, self.label, self.values + tuple(values))


class ExtensionForm(collections.namedtuple("ExtensionForm",
                                           ["form_type", "fields"])):
    """
    A set of :class:`Field` objects published under one ``FORM_TYPE``.

    :param form_type: The ``FORM_TYPE`` of the form. Must not be empty.
    :type form_type: :class:`str`
    :param fields: The fields of the form.
    :type fields: iterable of :class:`Field`
    :raises ValueError: if `form_type` is empty or two fields share a `var`

    .. automethod:: get_field
    """

    __slots__ = []

    def __new__(cls, form_type, fields=()):
        if not form_type:
            raise ValueError("form_type must not be empty")
        fields = tuple(fields)
        vars_ = [field.var for field in fields]
        if len(set(vars_)) != len(vars_):
            raise ValueError("duplicate field var in {}".format(vars_))
        return super().__new__(cls, form_type, fields)

    def get_field(self, var):
        """
        Return the field with the given `var` or :data:`None`.
        """
        for field in self.fields:
            if field.var == var:
                return field
        return None
