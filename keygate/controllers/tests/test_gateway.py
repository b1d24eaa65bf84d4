"""Tests for :mod:`keygate.controllers.gateway`."""

from unittest import TestCase, mock

from keygate import envelope, status
from keygate.controllers import gateway
from keygate.domain import GatewayRequest, Target, ValidRound
from keygate.envelope import EnvelopeMode
from keygate.exceptions import MissingParameter, RoundDataUnavailable, \
    UnknownParameter

SETTINGS = gateway.GatewaySettings(
    products_url='https://foo/products.js',
    round_url='https://foo/classify_24.js',
    universal_url='https://foo/universal/ajax.php',
    wanneng_url='https://foo/wanneng/ajax.php',
    client_secret_key='secret',
    client_secret_value='foovalue',
    another_secret='bazsecret',
    envelope_mode=EnvelopeMode.DERIVED
)
CONFIG = {
    'PRODUCTS_URL': SETTINGS.products_url,
    'ROUND_URL': SETTINGS.round_url,
    'UNIVERSAL_URL': SETTINGS.universal_url,
    'WANNENG_URL': SETTINGS.wanneng_url,
    'CLIENT_SECRET_KEY': SETTINGS.client_secret_key,
    'CLIENT_SECRET_VALUE': SETTINGS.client_secret_value,
    'ANOTHER_SECRET_STRING': SETTINGS.another_secret,
    'ENVELOPE_MODE': 'derived'
}


class TestSettings(TestCase):
    """Settings are loaded from the application config."""

    def test_from_config(self):
        """All fields are set."""
        self.assertEqual(gateway.GatewaySettings.from_config(CONFIG),
                         SETTINGS)

    def test_bad_mode(self):
        """An unknown envelope mode is an error."""
        with self.assertRaises(ValueError):
            gateway.GatewaySettings.from_config(
                dict(CONFIG, ENVELOPE_MODE='auto')
            )


class TestDispatcher(TestCase):
    """Each target is handled by its handler."""

    def setUp(self):
        """Create a dispatcher with a mock round-data service."""
        self.rounds = mock.MagicMock()
        self.dispatcher = gateway.Dispatcher(SETTINGS, self.rounds)

    def test_all_targets_handled(self):
        """Every target has a handler."""
        for target in Target:
            self.assertIn(target, gateway._HANDLERS)

    def test_main_menu(self):
        """The main menu is a static list."""
        self.assertEqual(
            self.dispatcher.payload(GatewayRequest(Target.MAIN_MENU)),
            gateway.MAIN_MENU
        )

    def test_module_menu(self):
        """The turntable module has a menu."""
        menu = self.dispatcher.payload(
            GatewayRequest(Target.MODULE_MENU, param='d8a7f1')
        )
        self.assertEqual(menu, gateway.MODULE_MENUS['d8a7f1'])

    def test_module_menu_requires_param(self):
        """A module must be passed."""
        with self.assertRaises(MissingParameter):
            self.dispatcher.payload(GatewayRequest(Target.MODULE_MENU))

    def test_unknown_module(self):
        """There are no other modules."""
        with self.assertRaises(UnknownParameter):
            self.dispatcher.payload(
                GatewayRequest(Target.MODULE_MENU, param='abcdef')
            )

    def test_feed_urls(self):
        """Feed URLs come from configuration."""
        self.assertEqual(
            self.dispatcher.payload(GatewayRequest(Target.FEED_URLS)),
            {'products': 'https://foo/products.js',
             'round': 'https://foo/classify_24.js',
             'universal': 'https://foo/universal/ajax.php',
             'wanneng': 'https://foo/wanneng/ajax.php'}
        )

    def test_client_secret(self):
        """The client secret is a key and a value."""
        self.assertEqual(
            self.dispatcher.payload(GatewayRequest(Target.CLIENT_SECRET)),
            {'key': 'secret', 'value': 'foovalue'}
        )

    def test_secret_string(self):
        """Another secret string."""
        self.assertEqual(
            self.dispatcher.payload(GatewayRequest(Target.SECRET_STRING)),
            'bazsecret'
        )

    def test_sorted_params(self):
        """Param keys are sorted together with the sentinel."""
        req = GatewayRequest(Target.SORTED_PARAMS,
                             params={'y': '2', 'x': '1'})
        self.assertEqual(self.dispatcher.payload(req), ['secret', 'x', 'y'])

    def test_sorted_params_keeps_duplicate_sentinel(self):
        """A ``secret`` param is not merged with the sentinel."""
        req = GatewayRequest(Target.SORTED_PARAMS,
                             params={'secret': '1', 'a': '2'})
        self.assertEqual(self.dispatcher.payload(req),
                         ['a', 'secret', 'secret'])

    def test_sorted_params_requires_params(self):
        """Params must be passed."""
        with self.assertRaises(MissingParameter):
            self.dispatcher.payload(GatewayRequest(Target.SORTED_PARAMS))

    def test_round_data(self):
        """Round codes are mapped to round types."""
        self.rounds.get_rounds.return_value = [
            ValidRound(name='Turntable', url='https://foo/universal/1',
                       created='2024-05-01')
        ]
        payload = self.dispatcher.payload(
            GatewayRequest(Target.ROUND_DATA, param='u1')
        )
        self.rounds.get_rounds.assert_called_once_with('universal')
        self.assertEqual(payload, [{'name': 'Turntable',
                                    'url': 'https://foo/universal/1',
                                    'created': '2024-05-01',
                                    'is_finished': False}])

        self.dispatcher.payload(GatewayRequest(Target.ROUND_DATA, param='w1'))
        self.rounds.get_rounds.assert_called_with('wanneng')

    def test_round_data_param(self):
        """The round code is required, and must be known."""
        with self.assertRaises(MissingParameter):
            self.dispatcher.payload(GatewayRequest(Target.ROUND_DATA))
        with self.assertRaises(UnknownParameter):
            self.dispatcher.payload(
                GatewayRequest(Target.ROUND_DATA, param='x1')
            )

    def test_dispatch_seals(self):
        """The payload is sealed under the subject."""
        sealed = self.dispatcher.dispatch(
            'fookey', GatewayRequest(Target.SECRET_STRING)
        )
        self.assertEqual(envelope.unseal(sealed, 'fookey',
                                         EnvelopeMode.DERIVED),
                         'bazsecret')


class TestHandleGateway(TestCase):
    """Gateway requests are mapped to responses."""

    def setUp(self):
        """Use a dispatcher with a mock round-data service."""
        self.rounds = mock.MagicMock()
        patch = mock.patch(f'{gateway.__name__}.get_dispatcher',
                           return_value=gateway.Dispatcher(SETTINGS,
                                                           self.rounds))
        patch.start()
        self.addCleanup(patch.stop)

    def test_sorted_params(self):
        """A sealed payload is returned."""
        data, code, _ = gateway.handle_gateway('fookey', {
            'target': 'g7', 'params': {'x': '1', 'y': '2'}
        })
        self.assertEqual(code, status.HTTP_200_OK)
        self.assertEqual(envelope.unseal(data['payload'], 'fookey',
                                         EnvelopeMode.DERIVED),
                         ['secret', 'x', 'y'])

    def test_unknown_target(self):
        """An unknown target is not found."""
        data, code, _ = gateway.handle_gateway('fookey', {'target': 'zz'})
        self.assertEqual(code, status.HTTP_404_NOT_FOUND)
        self.assertNotIn('payload', data)

    def test_unknown_param(self):
        """An unknown parameter is not found."""
        _, code, _ = gateway.handle_gateway('fookey',
                                            {'target': 'b2', 'p': 'zz'})
        self.assertEqual(code, status.HTTP_404_NOT_FOUND)

    def test_missing_param(self):
        """A missing or empty parameter is a bad request."""
        for body in ({'target': 'b2'}, {'target': 'd4', 'p': ''},
                     {'target': 'g7'}):
            _, code, _ = gateway.handle_gateway('fookey', body)
            self.assertEqual(code, status.HTTP_400_BAD_REQUEST)

    def test_malformed(self):
        """A body that cannot be parsed is a bad request."""
        for body in (None, ['a1'], {'p': 'd8a7f1'}):
            _, code, _ = gateway.handle_gateway('fookey', body)
            self.assertEqual(code, status.HTTP_400_BAD_REQUEST)

    def test_round_data_unavailable(self):
        """Upstream failures are reported generically."""
        self.rounds.get_rounds.side_effect = RoundDataUnavailable('down')
        data, code, _ = gateway.handle_gateway('fookey',
                                               {'target': 'd4', 'p': 'u1'})
        self.assertEqual(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(data, gateway.SERVER_ERROR)

    def test_unexpected_failure(self):
        """Unexpected failures are reported generically."""
        self.rounds.get_rounds.side_effect = KeyError('product_id')
        data, code, _ = gateway.handle_gateway('fookey',
                                               {'target': 'd4', 'p': 'w1'})
        self.assertEqual(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(data, gateway.SERVER_ERROR)


class TestHandleProfile(TestCase):
    """The profile of the session is sealed."""

    @mock.patch(f'{gateway.__name__}.get_application_config')
    def test_profile(self, mock_get_config):
        """The profile names the subject."""
        mock_get_config.return_value = {'ENVELOPE_MODE': 'direct'}
        data, code, _ = gateway.handle_profile('fookey')
        self.assertEqual(code, status.HTTP_200_OK)
        profile = envelope.unseal(data['payload'], 'fookey',
                                  EnvelopeMode.DIRECT)
        self.assertEqual(set(profile), {'user', 'createdAt'})
        self.assertEqual(profile['user'], 'fookey')
