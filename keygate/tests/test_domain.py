"""Tests for :mod:`keygate.domain`."""

from unittest import TestCase

from keygate import domain
from keygate.exceptions import MalformedRequest, PartialRecord, UnknownTarget


class TestKeyRecord(TestCase):
    """A key is bound once it has a province."""

    def test_unbound(self):
        """A fresh record is active and unbound."""
        record = domain.KeyRecord(key_id='fookey')
        self.assertFalse(record.banned)
        self.assertFalse(record.bound)

    def test_bound(self):
        """A record with a province is bound."""
        record = domain.KeyRecord(key_id='fookey', province='Guangdong',
                                  cities=('Shenzhen',))
        self.assertTrue(record.bound)

    def test_banned(self):
        """A banned record is banned."""
        record = domain.KeyRecord(key_id='fookey',
                                  status=domain.KeyStatus.BANNED)
        self.assertTrue(record.banned)


class TestGeoLookupResult(TestCase):
    """Results are parsed from the geolocation service response."""

    def test_success(self):
        """A successful response has a province and a city."""
        result = domain.GeoLookupResult.from_dict({
            'status': 'success',
            'query': '1.2.3.4',
            'regionName': 'Guangdong',
            'city': 'Shenzhen'
        })
        self.assertTrue(result.succeeded)
        self.assertEqual(result.province, 'Guangdong')
        self.assertEqual(result.city, 'Shenzhen')

    def test_failure(self):
        """A failed response carries the error message."""
        result = domain.GeoLookupResult.from_dict({
            'status': 'fail',
            'message': 'reserved range',
            'query': '10.0.0.1'
        })
        self.assertFalse(result.succeeded)
        self.assertEqual(result.error_message, 'reserved range')

    def test_no_status(self):
        """A response without a status is not a success."""
        self.assertFalse(domain.GeoLookupResult.from_dict({}).succeeded)


class TestGatewayRequest(TestCase):
    """Gateway requests are parsed from the JSON body."""

    def test_target_only(self):
        """A target code without parameters."""
        req = domain.GatewayRequest.from_dict({'target': 'a1'})
        self.assertEqual(req.target, domain.Target.MAIN_MENU)
        self.assertIsNone(req.param)
        self.assertIsNone(req.params)

    def test_with_params(self):
        """Both ``p`` and ``params`` are passed through."""
        req = domain.GatewayRequest.from_dict({
            'target': 'g7',
            'p': 'foo',
            'params': {'x': '1', 'y': '2'}
        })
        self.assertEqual(req.target, domain.Target.SORTED_PARAMS)
        self.assertEqual(req.param, 'foo')
        self.assertEqual(req.params, {'x': '1', 'y': '2'})

    def test_empty_param(self):
        """An empty ``p`` is the same as no ``p``."""
        req = domain.GatewayRequest.from_dict({'target': 'b2', 'p': ''})
        self.assertIsNone(req.param)

    def test_unknown_target(self):
        """A target code that is not known."""
        with self.assertRaises(UnknownTarget):
            domain.GatewayRequest.from_dict({'target': 'z9'})

    def test_malformed(self):
        """Bodies that are not objects, or have fields of the wrong type."""
        for body in (None, [], 'a1', {}, {'target': 1},
                     {'target': 'b2', 'p': 5},
                     {'target': 'g7', 'params': ['x']},
                     {'target': 'g7', 'params': {'x': 1}}):
            with self.assertRaises(MalformedRequest):
                domain.GatewayRequest.from_dict(body)


class TestCatalogEntry(TestCase):
    """Catalog entries are parsed from the product catalog."""

    def test_valid(self):
        """All fields are present."""
        entry = domain.CatalogEntry.from_dict('42', {
            'jump_url': 'https://act.3839.com/n/hykb/universal/index.php',
            'product_name': 'Turntable',
            'create_at': '2024-01-01',
            'price': 10
        })
        self.assertEqual(entry.product_id, '42')
        self.assertEqual(entry.product_name, 'Turntable')

    def test_partial(self):
        """Missing or mistyped fields make a partial record."""
        for data in (None, 'foo', {'product_name': 'Turntable',
                                   'create_at': '2024-01-01'},
                     {'jump_url': 'https://foo', 'product_name': 7,
                      'create_at': '2024-01-01'}):
            with self.assertRaises(PartialRecord):
                domain.CatalogEntry.from_dict('42', data)
