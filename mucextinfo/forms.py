########################################################################
# File name: forms.py
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
:mod:`~mucextinfo.forms` --- Data Forms in discovery results (:xep:`4`)
#######################################################################

Discovery responses carry their extended information as :xep:`4` data forms
of type ``result`` (see :xep:`128`). This module provides immutable value
types for those forms. Being immutable and hashable, they can be collected in
sets and shared between threads without copying.

.. autoclass:: FieldType

.. autoclass:: DataType

.. autoclass:: FormField(var, label=None, type_=FieldType.TEXT_SINGLE, values=())

.. autoclass:: Data(type_, fields=())

.. data:: FORM_TYPE

   The ``var`` of the field identifying the schema of a form (:xep:`68`).

"""

import collections
import enum

from .utils import etree, namespaces


FORM_TYPE = "FORM_TYPE"


class FieldType(enum.Enum):
    """
    Enumeration containing the field types defined in :xep:`4`.

    .. autoattribute:: is_multivalued

    :attr:`TEXT_SINGLE` is the default type and must be assumed if a field
    carries no or an unknown type. :attr:`HIDDEN` is used for the
    ``FORM_TYPE`` field, as specified in :xep:`68`.
    """

    FIXED = "fixed"
    HIDDEN = "hidden"
    BOOLEAN = "boolean"
    TEXT_SINGLE = "text-single"
    TEXT_MULTI = "text-multi"
    TEXT_PRIVATE = "text-private"
    LIST_SINGLE = "list-single"
    LIST_MULTI = "list-multi"
    JID_SINGLE = "jid-single"
    JID_MULTI = "jid-multi"

    @property
    def is_multivalued(self):
        """
        true for the ``-multi`` field types, false otherwise.
        """
        return self.value.endswith("-multi")


class DataType(enum.Enum):
    """
    Enumeration containing the :class:`Data` types defined in :xep:`4`.

    Discovery extensions always use :attr:`RESULT`.
    """

    FORM = "form"
    SUBMIT = "submit"
    RESULT = "result"
    CANCEL = "cancel"


class FormField(collections.namedtuple("FormField",
                                       ["var", "label", "type_", "values"])):
    """
    A single field of a :class:`Data` form.

    :param var: "ID" identifying the field uniquely inside the form.
    :type var: :class:`str` or :data:`None`
    :param label: Human-readable label to be shown next to the field.
    :type label: :class:`str` or :data:`None`
    :param type_: Field type.
    :type type_: :class:`FieldType`
    :param values: The values given for the field.
    :type values: iterable of :class:`str`

    .. automethod:: replace

    .. automethod:: with_values
    """

    __slots__ = []

    def __new__(cls, var, label=None, type_=FieldType.TEXT_SINGLE,
                values=()):
        return super().__new__(cls, var, label, type_, tuple(values))

    def replace(self, **kwargs):
        """
        Return a copy of the field with the given attributes replaced.
        """
        values = kwargs.pop("values", None)
        result = self._replace(**kwargs)
        if values is not None:
            result = result._replace(values=tuple(values))
        return result

    def with_values(self, values):
        """
        Return a copy of the field with `values` appended.

        If the field ends up with more than one value, the type of the copy is
        :attr:`FieldType.TEXT_MULTI`. The type is left alone otherwise.
        """
        new_values = self.values + tuple(values)
        type_ = self.type_
        if len(new_values) > 1:
            type_ = FieldType.TEXT_MULTI
        return self._replace(type_=type_, values=new_values)


class Data(collections.namedtuple("Data", ["type_", "fields"])):
    """
    A :xep:`4` ``x`` element, that is, a Data Form.

    :param type_: The type of the form.
    :type type_: :class:`DataType`
    :param fields: The fields of the form.
    :type fields: iterable of :class:`FormField`

    .. automethod:: get_form_type

    .. automethod:: get_field

    .. automethod:: with_field

    .. automethod:: to_xml

    .. automethod:: from_xml
    """

    __slots__ = []

    def __new__(cls, type_, fields=()):
        return super().__new__(cls, type_, tuple(fields))

    def get_form_type(self):
        """
        Extract the ``FORM_TYPE`` from the fields.

        :return: First value of the ``FORM_TYPE`` field or :data:`None`
        :rtype: :class:`str` or :data:`None`
        """
        field = self.get_field(FORM_TYPE)
        if field is None or not field.values:
            return None
        return field.values[0]

    def get_field(self, var):
        """
        Return the first field with the given `var` or :data:`None`.
        """
        for field in self.fields:
            if field.var == var:
                return field
        return None

    def with_field(self, field):
        """
        Return a copy of the form in which `field` replaces the field with
        the same `var`, or is appended if there is no such field.
        """
        fields = list(self.fields)
        for i, existing in enumerate(fields):
            if existing.var == field.var:
                fields[i] = field
                break
        else:
            fields.append(field)
        return self._replace(fields=tuple(fields))

    def to_xml(self):
        """
        Render the form as ``{jabber:x:data}x`` :mod:`lxml` element.

        :rtype: :class:`lxml.etree._Element`
        """
        def tag(localname):
            return "{{{}}}{}".format(namespaces.xep0004_data, localname)

        el = etree.Element(tag("x"), nsmap={None: namespaces.xep0004_data})
        el.set("type", self.type_.value)
        for field in self.fields:
            field_el = etree.SubElement(el, tag("field"))
            if field.var is not None:
                field_el.set("var", field.var)
            if field.label is not None:
                field_el.set("label", field.label)
            field_el.set("type", field.type_.value)
            for value in field.values:
                etree.SubElement(field_el, tag("value")).text = value
        return el

    @classmethod
    def from_xml(cls, el):
        """
        Parse a ``{jabber:x:data}x`` :mod:`lxml` element.

        :raises ValueError: if `el` is not a data form or carries an unknown
            form type.
        :rtype: :class:`Data`

        Fields without ``type`` attribute are :attr:`FieldType.TEXT_SINGLE`,
        as :xep:`4` demands. Elements other than fields are ignored.
        """
        ns = namespaces.xep0004_data
        if el.tag != "{{{}}}x".format(ns):
            raise ValueError("not a data form: {!r}".format(el.tag))

        fields = []
        for field_el in el.iterchildren("{{{}}}field".format(ns)):
            try:
                type_ = FieldType(field_el.get("type", "text-single"))
            except ValueError:
                type_ = FieldType.TEXT_SINGLE
            fields.append(FormField(
                var=field_el.get("var"),
                label=field_el.get("label"),
                type_=type_,
                values=[
                    value_el.text or ""
                    for value_el in field_el.iterchildren(
                        "{{{}}}value".format(ns)
                    )
                ],
            ))

        return cls(DataType(el.get("type")), fields)
