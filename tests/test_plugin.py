########################################################################
# File name: test_plugin.py
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
import unittest
import unittest.mock

import mucextinfo.disco as disco
import mucextinfo.plugin as plugin


class BrokenRegistry(dict):
    def __init__(self, *args, broken_domain, **kwargs):
        super().__init__(*args, **kwargs)
        self.broken_domain = broken_domain

    def __setitem__(self, key, value):
        if key == self.broken_domain:
            raise RuntimeError("read-only entry")
        super().__setitem__(key, value)


class TestMUCExtInfoPlugin(unittest.TestCase):
    def setUp(self):
        self.muc1 = unittest.mock.Mock(spec=disco.AbstractInfoProvider)
        self.muc2 = unittest.mock.Mock(spec=disco.AbstractInfoProvider)
        self.other = unittest.mock.Mock(spec=disco.AbstractInfoProvider)
        self.registry = {
            "muc1.example": self.muc1,
            "muc2.example": self.muc2,
            "other.example": self.other,
        }
        self.store = unittest.mock.Mock()
        self.p = plugin.MUCExtInfoPlugin(
            self.registry,
            self.store,
            ["muc1.example", "muc2.example", "missing.example"],
        )

    def tearDown(self):
        del self.p

    def test_service_domains(self):
        self.assertEqual(
            ["muc1.example", "muc2.example", "missing.example"],
            self.p.service_domains,
        )

    def test_initialize_wraps_configured_providers(self):
        self.p.initialize()

        for domain, original in [("muc1.example", self.muc1),
                                 ("muc2.example", self.muc2)]:
            wrapper = self.registry[domain]
            self.assertIsInstance(wrapper, disco.ExtendedInfoProvider)
            self.assertIs(original, wrapper.delegate)
            self.assertEqual(domain, wrapper.service_domain)

        self.assertIs(self.other, self.registry["other.example"])
        self.assertNotIn("missing.example", self.registry)

    def test_wrapper_uses_store(self):
        self.p.initialize()
        self.muc1.get_extended_infos.return_value = set()
        self.store.get_forms.return_value = None

        self.registry["muc1.example"].get_extended_infos("room", None, None)

        self.store.get_forms.assert_called_once_with(
            disco.JID("room", "muc1.example", None),
        )

    def test_initialize_twice_does_not_double_wrap(self):
        self.p.initialize()
        wrapper = self.registry["muc1.example"]
        self.p.initialize()

        self.assertIs(wrapper, self.registry["muc1.example"])

    def test_destroy_restores_originals(self):
        self.p.initialize()
        self.p.destroy()

        self.assertEqual(
            {
                "muc1.example": self.muc1,
                "muc2.example": self.muc2,
                "other.example": self.other,
            },
            self.registry,
        )
        self.assertIs(self.muc1, self.registry["muc1.example"])
        self.assertIs(self.muc2, self.registry["muc2.example"])

    def test_destroy_without_initialize(self):
        self.p.destroy()

        self.assertIs(self.muc1, self.registry["muc1.example"])
        self.assertIs(self.muc2, self.registry["muc2.example"])

    def test_destroy_leaves_foreign_replacements_alone(self):
        self.p.initialize()
        replacement = unittest.mock.Mock(spec=disco.AbstractInfoProvider)
        self.registry["muc2.example"] = replacement

        self.p.destroy()

        self.assertIs(self.muc1, self.registry["muc1.example"])
        self.assertIs(replacement, self.registry["muc2.example"])

    def test_failure_for_one_domain_does_not_affect_others(self):
        registry = BrokenRegistry(
            {"muc1.example": self.muc1, "muc2.example": self.muc2},
            broken_domain="muc1.example",
        )
        p = plugin.MUCExtInfoPlugin(
            registry,
            self.store,
            ["muc1.example", "muc2.example"],
        )

        with self.assertLogs("mucextinfo.plugin", "ERROR") as cm:
            p.initialize()

        self.assertIn("muc1.example", cm.output[0])
        self.assertIs(self.muc1, registry["muc1.example"])
        self.assertIsInstance(registry["muc2.example"],
                              disco.ExtendedInfoProvider)

        p.destroy()
        self.assertIs(self.muc2, registry["muc2.example"])

    def test_uses_given_logger(self):
        logger = unittest.mock.Mock()
        registry = BrokenRegistry(
            {"muc1.example": self.muc1},
            broken_domain="muc1.example",
        )
        p = plugin.MUCExtInfoPlugin(
            registry,
            self.store,
            ["muc1.example"],
            logger=logger,
        )

        p.initialize()

        logger.exception.assert_called_once_with(
            unittest.mock.ANY,
            "muc1.example",
        )
        self.assertTrue(logger.info.mock_calls)

    def test_default_logger(self):
        self.assertEqual("mucextinfo.plugin", self.p.logger.name)
