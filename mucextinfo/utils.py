########################################################################
# File name: utils.py
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
:mod:`~mucextinfo.utils` --- Internal utils
===========================================

.. data:: namespaces

   Collects the XML namespaces used by this package. Each namespace is given
   a shortname and its value is the namespace string.

.. autoclass:: Namespaces

"""

import lxml.etree as etree

__all__ = [
    "etree",
    "namespaces",
]


class Namespaces:
    """
    Manage short-hands for XML namespaces.

    A short-hand can be bound to exactly one namespace and a namespace can be
    bound to exactly one short-hand; rebinding either raises
    :class:`ValueError`. Short-hands cannot be deleted.
    """

    def __init__(self):
        self._all_namespaces = {}

    def __setattr__(self, attr, value):
        if not attr.startswith("_"):
            existing_attr = self._all_namespaces.get(value)
            if existing_attr is not None and existing_attr != attr:
                raise ValueError(
                    "namespace {} already defined as {}".format(
                        value,
                        existing_attr,
                    )
                )
            if getattr(self, attr, value) != value:
                raise ValueError("inconsistent namespace redefinition")
            self._all_namespaces[value] = attr
        super().__setattr__(attr, value)

    def __delattr__(self, attr):
        if not attr.startswith("_"):
            raise AttributeError("deleting short-hands is prohibited")
        super().__delattr__(attr)


namespaces = Namespaces()
namespaces.xep0004_data = "jabber:x:data"
