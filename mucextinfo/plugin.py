########################################################################
# File name: plugin.py
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
:mod:`~mucextinfo.plugin` --- Installation into a host server
#############################################################

.. autoclass:: MUCExtInfoPlugin

"""

import logging
import threading

from .disco import ExtendedInfoProvider


logger = logging.getLogger(__name__)


class MUCExtInfoPlugin:
    """
    Put :class:`~.disco.ExtendedInfoProvider` wrappers in front of the
    discovery providers of MUC services.

    :param registry: The host's discovery providers, keyed by service domain.
    :type registry: :class:`~collections.abc.MutableMapping` of :class:`str`
        to :class:`~.disco.AbstractInfoProvider`
    :param store: The store to take the extension forms from.
    :type store: :class:`~.storage.ExtensionStore`
    :param service_domains: The domains of the MUC services to enrich.
    :type service_domains: iterable of :class:`str`
    :param logger: Logger to use instead of the module logger.
    :type logger: :class:`logging.Logger`

    .. automethod:: initialize

    .. automethod:: destroy

    The registry is the hook through which the host lets plugins replace
    providers; it is only ever accessed through the mapping interface.
    """

    def __init__(self, registry, store, service_domains, *, logger=None):
        super().__init__()
        self.logger = logger or logging.getLogger(__name__)
        self._registry = registry
        self._store = store
        self._service_domains = list(service_domains)
        self._lock = threading.Lock()

    @property
    def service_domains(self):
        return list(self._service_domains)

    def initialize(self):
        """
        Wrap the provider of each configured service domain.

        Domains without registered provider and domains whose provider is
        already wrapped are skipped. A failure for one domain is logged and
        does not affect the others.
        """
        self.logger.info(
            "replacing disco info providers of %d MUC service(s)",
            len(self._service_domains),
        )
        with self._lock:
            for domain in self._service_domains:
                try:
                    original = self._registry.get(domain)
                    if original is None:
                        self.logger.debug("no provider for %s", domain)
                        continue
                    if isinstance(original, ExtendedInfoProvider):
                        self.logger.debug(
                            "provider for %s is already wrapped", domain,
                        )
                        continue
                    self._registry[domain] = ExtendedInfoProvider(
                        original,
                        domain,
                        self._store,
                    )
                    self.logger.debug("replaced provider for %s", domain)
                except Exception:
                    self.logger.exception(
                        "failed to replace provider for %s", domain,
                    )

    def destroy(self):
        """
        Restore the original provider of each configured service domain.

        Only providers which are :class:`~.disco.ExtendedInfoProvider`
        instances are touched.
        """
        self.logger.info(
            "restoring disco info providers of %d MUC service(s)",
            len(self._service_domains),
        )
        with self._lock:
            for domain in self._service_domains:
                try:
                    current = self._registry.get(domain)
                    if not isinstance(current, ExtendedInfoProvider):
                        continue
                    self._registry[domain] = current.delegate
                    self.logger.debug("restored provider for %s", domain)
                except Exception:
                    self.logger.exception(
                        "failed to restore provider for %s", domain,
                    )
