########################################################################
# File name: stringprep.py
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
Stringprep support
##################

Room addresses are used as cache and storage keys, so two spellings of the
same address must collapse to one string. This module implements the
profiles required for that:

.. autofunction:: nodeprep

.. autofunction:: resourceprep

.. autofunction:: nameprep

All three share one preparation pipeline (mapping, NFKC normalization,
prohibited output check, bidi check, unassigned check) and differ only in
the tables they use, see `RFC 3454`_ and `RFC 6122`_.

.. _RFC 3454: https://tools.ietf.org/html/rfc3454
.. _RFC 6122: https://tools.ietf.org/html/rfc6122

"""

import collections
import stringprep

from unicodedata import ucd_3_2_0 as unicodedata

_nodeprep_prohibited = frozenset("\"&'/:<>@")

_COMMON_PROHIBITED = (
    stringprep.in_table_c12,
    stringprep.in_table_c22,
    stringprep.in_table_c3,
    stringprep.in_table_c4,
    stringprep.in_table_c5,
    stringprep.in_table_c6,
    stringprep.in_table_c7,
    stringprep.in_table_c8,
    stringprep.in_table_c9,
)


Profile = collections.namedtuple("Profile", ["case_fold", "prohibited"])


NODEPREP = Profile(
    case_fold=True,
    prohibited=_COMMON_PROHIBITED + (
        stringprep.in_table_c11,
        stringprep.in_table_c21,
        lambda c: c in _nodeprep_prohibited,
    ),
)

RESOURCEPREP = Profile(
    case_fold=False,
    prohibited=_COMMON_PROHIBITED + (
        stringprep.in_table_c21,
    ),
)

NAMEPREP = Profile(
    case_fold=True,
    prohibited=_COMMON_PROHIBITED,
)


def _first_in_tables(chars, tables):
    for c in chars:
        if any(in_table(c) for in_table in tables):
            return c
    return None


def _map(chars, case_fold):
    result = []
    for c in chars:
        if stringprep.in_table_b1(c):
            # commonly mapped to nothing
            continue
        if case_fold:
            result.extend(stringprep.map_table_b2(c))
        else:
            result.append(c)
    return result


def _check_bidi(chars):
    if not chars:
        return

    def is_RandALCat(c):
        return unicodedata.bidirectional(c) in ("R", "AL")

    if not any(is_RandALCat(c) for c in chars):
        return

    if any(unicodedata.bidirectional(c) == "L" for c in chars):
        raise ValueError("L and R/AL characters must not occur in the same"
                         " string")

    if not is_RandALCat(chars[0]) or not is_RandALCat(chars[-1]):
        raise ValueError("R/AL string must start and end with R/AL character.")


def prepare(string, profile, allow_unassigned=False):
    """
    Run `string` through the stringprep `profile`.

    :param string: The string to prepare.
    :type string: :class:`str`
    :param profile: One of :data:`NODEPREP`, :data:`RESOURCEPREP` or
        :data:`NAMEPREP`.
    :param allow_unassigned: Accept code points unassigned in Unicode 3.2.
    :type allow_unassigned: :class:`bool`
    :raises ValueError: if the string violates the profile.
    :rtype: :class:`str`
    """
    chars = _map(string, profile.case_fold)
    chars = list(unicodedata.normalize("NFKC", "".join(chars)))

    violator = _first_in_tables(chars, profile.prohibited)
    if violator is not None:
        raise ValueError("Input contains invalid unicode codepoint: "
                         "U+{:04x}".format(ord(violator)))

    _check_bidi(chars)

    if not allow_unassigned:
        violator = _first_in_tables(chars, (stringprep.in_table_a1,))
        if violator is not None:
            raise ValueError("Input contains unassigned code point: "
                             "U+{:04x}".format(ord(violator)))

    return "".join(chars)


def nodeprep(string, allow_unassigned=False):
    """
    Process the given `string` using the Nodeprep (`RFC 6122`_) profile. In the
    error cases defined in `RFC 3454`_ (stringprep), a :class:`ValueError` is
    raised.
    """
    return prepare(string, NODEPREP, allow_unassigned=allow_unassigned)


def resourceprep(string, allow_unassigned=False):
    """
    Process the given `string` using the Resourceprep (`RFC 6122`_) profile. In
    the error cases defined in `RFC 3454`_ (stringprep), a :class:`ValueError`
    is raised.
    """
    return prepare(string, RESOURCEPREP, allow_unassigned=allow_unassigned)


def nameprep(string, allow_unassigned=False):
    """
    Process the given `string` using the Nameprep (`RFC 3491`_) profile.

    .. _RFC 3491: https://tools.ietf.org/html/rfc3491
    """
    return prepare(string, NAMEPREP, allow_unassigned=allow_unassigned)
