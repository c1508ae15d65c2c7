########################################################################
# File name: __init__.py
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
Version information
###################

.. autodata:: __version__

.. data:: version

   Alias of :data:`__version__`.

.. autodata:: version_info

Overview
########

Operator-defined :xep:`128` extension forms for MUC rooms.

.. autosummary::
    :nosignatures:

    mucextinfo.ExtensionStore
    mucextinfo.ExtendedInfoProvider
    mucextinfo.MUCExtInfoPlugin
    mucextinfo.merge

A minimal setup, assuming the host exposes its discovery providers as a
mapping `providers`::

  import mucextinfo

  provider = mucextinfo.SQLiteConnectionProvider("/var/lib/muc/ext.db")
  provider.ensure_schema()
  store = mucextinfo.ExtensionStore(provider)

  plugin = mucextinfo.MUCExtInfoPlugin(
      providers, store, ["conference.example.com"],
  )
  plugin.initialize()

  store.add_field("room@conference.example.com",
                  "urn:example:room-extras",
                  "topic-url", "Topic URL", "https://example.com/")

"""
from ._version import version_info, __version__, version  # NOQA: F401

#: The imported :mod:`mucextinfo` version as a tuple.
version_info = version_info

#: The imported :mod:`mucextinfo` version as a string.
__version__ = __version__

from .structs import JID, Field, ExtensionForm  # NOQA: F401
from .forms import Data, DataType, FormField, FieldType  # NOQA: F401
from .storage import (  # NOQA: F401
    ExtensionStore,
    AbstractConnectionProvider,
    SQLiteConnectionProvider,
    rows_to_forms,
)
from .disco import (  # NOQA: F401
    AbstractInfoProvider,
    ExtendedInfoProvider,
    merge,
)
from .plugin import MUCExtInfoPlugin  # NOQA: F401
