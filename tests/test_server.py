#!/usr/bin/env python3
"""
Flask route tests for gate_server.

Run with:
    python -m pytest tests/test_server.py
"""
import json
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import gate_server
from gamegate.errors import StorageError
from gamegate.repositories import AccessLogRepository, GameConfigRepository
from gamegate.services import AuditService, ConfigService, GeoService

FAKE_CONFIG = {
    'g1': {
        'url': 'http://x',
        'AFKey': 'af-key-1',
        'AdjustToken': 'adj-1',
        'Orientation': 'portrait',
        'JSInterfaceName': 'jsBridge',
        'isOpen': False,
    },
    'g2': {
        'url': 'https://example.com/g2',
        'AFKey': '',
        'AdjustToken': '',
        'Orientation': 'landscape',
        'JSInterfaceName': 'AndroidBridge',
        'isOpen': True,
    },
}


class ServerTestCase(unittest.TestCase):
    """Builds an app over a temp config file and access log."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.config_path = os.path.join(self.tmp, 'config.json')
        self.log_path = os.path.join(self.tmp, 'log.txt')
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(FAKE_CONFIG, f)

        self.config_service = ConfigService(GameConfigRepository(self.config_path))
        self.config_service.load()
        self.log_repo = AccessLogRepository(self.log_path)
        self.audit_service = AuditService(self.log_repo, GeoService(None))

        app = gate_server.create_app(self.config_service, self.audit_service)
        app.config['TESTING'] = True
        self.client = app.test_client()

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _log_lines(self):
        return self.log_repo.lines()


class TestGetRoute(ServerTestCase):

    def test_gated_game_returns_record_and_logs(self):
        resp = self.client.get('/get?gameId=g1')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(json.loads(resp.data), FAKE_CONFIG['g1'])
        lines = self._log_lines()
        self.assertEqual(len(lines), 1)
        self.assertIn(' 127.0.0.1 本地 localhost g1 /get', lines[0])

    def test_open_game_does_not_log(self):
        resp = self.client.get('/get?gameId=g2')
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(json.loads(resp.data)['isOpen'])
        self.assertEqual(self._log_lines(), [])

    def test_missing_game_404_without_log(self):
        resp = self.client.get('/get?gameId=missing')
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(json.loads(resp.data),
                         {'error': "gameId 'missing' not found"})
        self.assertEqual(self._log_lines(), [])

    def test_field_names_preserved(self):
        data = json.loads(self.client.get('/get?gameId=g1').data)
        self.assertEqual(set(data), {'url', 'AFKey', 'AdjustToken', 'Orientation',
                                     'JSInterfaceName', 'isOpen'})

    def test_remote_addr_with_unknown_location(self):
        resp = self.client.get('/get?gameId=g1',
                               environ_base={'REMOTE_ADDR': '203.0.113.7'})
        self.assertEqual(resp.status_code, 200)
        self.assertIn(' 203.0.113.7   g1 /get', self._log_lines()[0])

    def test_ipv6_client_against_ipv4_database(self):
        reader = MagicMock()
        reader.city.side_effect = ValueError(
            'You attempted to look up an IPv6 address in an IPv4-only database')
        audit_service = AuditService(self.log_repo, GeoService(reader))
        client = gate_server.create_app(self.config_service, audit_service).test_client()
        resp = client.get('/get?gameId=g1', environ_base={'REMOTE_ADDR': '2001:db8::1'})
        self.assertEqual(resp.status_code, 200)
        self.assertIn(' 2001:db8::1   g1 /get', self._log_lines()[0])


class TestSetRoute(ServerTestCase):

    def test_scenario_open_then_get(self):
        self.client.get('/get?gameId=g1')
        self.assertEqual(len(self._log_lines()), 1)

        resp = self.client.get('/set?gameId=g1&open=true')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(json.loads(resp.data),
                         {'message': "gameId 'g1' isOpen set to 'true'"})

        data = json.loads(self.client.get('/get?gameId=g1').data)
        self.assertTrue(data['isOpen'])
        self.assertEqual(len(self._log_lines()), 1)

        self.client.get('/get?gameId=missing')
        self.assertEqual(len(self._log_lines()), 1)

    def test_set_persists_to_file(self):
        self.client.get('/set?gameId=g1&open=true')
        with open(self.config_path, encoding='utf-8') as f:
            self.assertTrue(json.load(f)['g1']['isOpen'])

    def test_anything_but_true_closes(self):
        for value in ('false', 'TRUE', '1', ''):
            self.client.get('/set?gameId=g2&open=true')
            resp = self.client.get(f'/set?gameId=g2&open={value}')
            self.assertEqual(resp.status_code, 200)
            self.assertFalse(self.config_service.get('g2')['isOpen'], value)

    def test_missing_game_404(self):
        resp = self.client.get('/set?gameId=missing&open=true')
        self.assertEqual(resp.status_code, 404)
        self.assertIsNone(self.config_service.get('missing'))

    def test_save_failure_500(self):
        with patch.object(self.config_service, 'save', side_effect=StorageError('ro')):
            resp = self.client.get('/set?gameId=g1&open=true')
        self.assertEqual(resp.status_code, 500)
        self.assertIn('error', json.loads(resp.data))


class TestReloadRoute(ServerTestCase):

    def test_reload_returns_map(self):
        resp = self.client.get('/reloadCfg')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(json.loads(resp.data), FAKE_CONFIG)

    def test_reload_picks_up_edits(self):
        edited = {'g9': dict(FAKE_CONFIG['g1'], url='http://g9')}
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(edited, f)
        self.assertEqual(json.loads(self.client.get('/reloadCfg').data), edited)
        self.assertEqual(self.client.get('/get?gameId=g1').status_code, 404)

    def test_broken_file_keeps_served_config(self):
        with open(self.config_path, 'w') as f:
            f.write('{oops')
        resp = self.client.get('/reloadCfg')
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(self.client.get('/get?gameId=g2').status_code, 200)

    def test_invalid_utf8_keeps_served_config(self):
        with open(self.config_path, 'wb') as f:
            f.write(b'{"g1": {"url": "\xff\xfe"}}')
        resp = self.client.get('/reloadCfg')
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(json.loads(resp.data), {'error': 'Failed to reload config'})
        self.assertEqual(self.config_service.all(), FAKE_CONFIG)


class TestShowLogAndHealth(ServerTestCase):

    def test_showlog_empty(self):
        resp = self.client.get('/showlog')
        self.assertEqual(resp.status_code, 200)
        self.assertIn('text/plain', resp.content_type)
        self.assertEqual(resp.data, b'')

    def test_showlog_returns_entries(self):
        self.client.get('/get?gameId=g1')
        self.client.get('/get?gameId=g1')
        body = self.client.get('/showlog').get_data(as_text=True)
        self.assertEqual(len(body.splitlines()), 2)
        self.assertIn('本地', body)

    def test_showlog_read_error(self):
        with patch.object(self.audit_service, 'read_log', side_effect=StorageError('x')):
            resp = self.client.get('/showlog')
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(json.loads(resp.data), {'message': 'Error reading log file'})

    def test_health(self):
        data = json.loads(self.client.get('/health').data)
        self.assertEqual(data, {'status': 'healthy', 'games': 2, 'geoip': False})


if __name__ == '__main__':
    unittest.main()
