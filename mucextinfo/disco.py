########################################################################
# File name: disco.py
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
:mod:`~mucextinfo.disco` --- Service Discovery Extensions (:xep:`128`)
#####################################################################

The host server answers ``disco#info`` queries using one
:class:`AbstractInfoProvider` per service. :class:`ExtendedInfoProvider`
wraps such a provider and adds the extension forms stored for the queried
room to the data forms of the response.

.. autoclass:: AbstractInfoProvider

.. autoclass:: ExtendedInfoProvider

.. autofunction:: merge

.. autofunction:: first_form

"""

import abc
import logging

from . import forms
from .structs import JID


logger = logging.getLogger(__name__)


class AbstractInfoProvider(metaclass=abc.ABCMeta):
    """
    Source of :xep:`30` information for the entities of one service.

    All methods take the same arguments: `name` is the localpart of the
    queried entity (or :data:`None` for the service itself), `node` is the
    queried node (or :data:`None`) and `sender` is the :class:`~.JID` of the
    requester.

    .. automethod:: get_identities

    .. automethod:: get_features

    .. automethod:: get_extended_infos

    .. automethod:: get_extended_info

    .. automethod:: has_info
    """

    @abc.abstractmethod
    def get_identities(self, name, node, sender):
        """
        Return an iterable of identities, in whatever representation the
        host uses.
        """

    @abc.abstractmethod
    def get_features(self, name, node, sender):
        """
        Return an iterable of feature namespace strings.
        """

    @abc.abstractmethod
    def get_extended_infos(self, name, node, sender):
        """
        Return a set of :class:`~.forms.Data` forms.
        """

    def get_extended_info(self, name, node, sender):
        """
        Return a single :class:`~.forms.Data` form or :data:`None`.

        The default implementation picks from :meth:`get_extended_infos`,
        preferring forms with a ``FORM_TYPE`` and, among those, the lowest
        ``FORM_TYPE``.
        """
        return first_form(self.get_extended_infos(name, node, sender))

    @abc.abstractmethod
    def has_info(self, name, node, sender):
        """
        Return true if there is information for the entity.
        """


def first_form(data_forms):
    """
    Pick one form out of `data_forms`, deterministically.

    :rtype: :class:`~.forms.Data` or :data:`None`
    """
    def key(form):
        form_type = form.get_form_type()
        return form_type is None, form_type or ""

    return min(data_forms or (), key=key, default=None)


def _form_for_type(data_forms, form_type):
    for form in data_forms:
        if form.get_form_type() == form_type:
            return form
    return None


def merge(data_forms, extension):
    """
    Merge an extension form into a set of data forms.

    :param data_forms: The forms to merge into.
    :type data_forms: iterable of :class:`~.forms.Data` or :data:`None`
    :param extension: The extension to merge.
    :type extension: :class:`~.structs.ExtensionForm` or :data:`None`
    :return: The merged forms.
    :rtype: :class:`frozenset` of :class:`~.forms.Data`

    The extension is merged into the form whose ``FORM_TYPE`` equals the
    :attr:`~.structs.ExtensionForm.form_type` of the extension. If there is
    no such form, a new ``result`` form carrying a hidden ``FORM_TYPE`` field
    is created for it. The other forms are passed through as they are.

    Each field of the extension is merged into the same-named field of that
    form, or added as new field (with the label of the extension field) if
    there is none. Values of the extension are appended after the existing
    values. Fields ending up with more than one value are typed
    :attr:`~.forms.FieldType.TEXT_MULTI`.

    Neither the input forms nor the extension are modified.
    """
    result = set(data_forms or ())
    if extension is None:
        return frozenset(result)

    target = _form_for_type(result, extension.form_type)
    if target is None:
        target = forms.Data(
            forms.DataType.RESULT,
            [
                forms.FormField(
                    var=forms.FORM_TYPE,
                    type_=forms.FieldType.HIDDEN,
                    values=[extension.form_type],
                ),
            ]
        )
    else:
        result.discard(target)

    for ext_field in extension.fields:
        field = target.get_field(ext_field.var)
        if field is None:
            field = forms.FormField(var=ext_field.var, label=ext_field.label)
        target = target.with_field(field.with_values(ext_field.values))

    result.add(target)
    return frozenset(result)


class ExtendedInfoProvider(AbstractInfoProvider):
    """
    Wrap an :class:`AbstractInfoProvider` and add the extension forms of the
    queried room to its extended information.

    :param delegate: The provider to wrap.
    :type delegate: :class:`AbstractInfoProvider`
    :param service_domain: The domain of the MUC service; together with the
        queried name it forms the room address.
    :type service_domain: :class:`str`
    :param store: The store to take the extension forms from.
    :type store: :class:`~.storage.ExtensionStore`
    :param logger: Logger to use instead of the module logger.

    Identities, features and :meth:`has_info` are answered by the delegate
    alone.

    Failure to obtain or merge the extension forms is logged and the
    delegate's result is returned as-is; a discovery response lacking the
    extension data is preferable to none at all. Exceptions raised by the
    delegate itself propagate.

    .. autoattribute:: delegate

    .. autoattribute:: service_domain
    """

    def __init__(self, delegate, service_domain, store, *, logger=None):
        super().__init__()
        self._delegate = delegate
        self._service_domain = service_domain
        self._store = store
        self.logger = logger or logging.getLogger(__name__)

    @property
    def delegate(self):
        """
        The wrapped provider.
        """
        return self._delegate

    @property
    def service_domain(self):
        return self._service_domain

    def get_identities(self, name, node, sender):
        return self._delegate.get_identities(name, node, sender)

    def get_features(self, name, node, sender):
        return self._delegate.get_features(name, node, sender)

    def has_info(self, name, node, sender):
        return self._delegate.has_info(name, node, sender)

    def get_extended_infos(self, name, node, sender):
        self.logger.debug(
            "getting extended info for name %r, node %r, sender %s",
            name, node, sender,
        )

        result = frozenset(
            self._delegate.get_extended_infos(name, node, sender) or ()
        )
        self.logger.debug("obtained %d form(s) from the delegate",
                          len(result))

        try:
            room = JID(name, self._service_domain, None)
            extensions = self._store.get_forms(room)
            self.logger.debug("obtained %d extension form(s) for %s",
                              len(extensions or ()), room)

            enriched = result
            for extension in extensions or ():
                enriched = merge(enriched, extension)
        except Exception:
            self.logger.exception(
                "failed to add extension forms for name %r",
                name,
            )
            return result

        return enriched
