#!/usr/bin/env python3
"""
GameGate HTTP service.

Routes:
  GET /get?gameId=<id>             config record (access logged while gated)
  GET /set?gameId=<id>&open=<b>    set isOpen and save the config file
  GET /reloadCfg                   reload the config file, return every record
  GET /showlog                     the gated-game access log as plain text
  GET /health                      liveness and basic counters
"""
import logging
import os
from typing import Dict, Optional

from flask import Flask, Response, jsonify, request

import gate
from gamegate.errors import NotFoundError, ParseError, StorageError
from gamegate.services import AuditService, ConfigService

server_logger = logging.getLogger('gamegate.server')


def _attach_file_handler(log_level: str) -> None:
    """Mirror server logs into ``logs/gamegate_server.log``."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    try:
        os.makedirs('logs', exist_ok=True)
        fh = logging.FileHandler('logs/gamegate_server.log')
        fh.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s'))
        fh.setLevel(level)
        logging.getLogger('gamegate').addHandler(fh)
    except OSError:
        server_logger.warning('Could not create log file handler')


def _not_found(game_id: str):
    return jsonify({'error': f"gameId '{game_id}' not found"}), 404


def create_app(config_service: ConfigService, audit_service: AuditService) -> Flask:
    """Build the Flask app around already constructed services."""
    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.json.sort_keys = False
    app.extensions['gamegate.config'] = config_service
    app.extensions['gamegate.audit'] = audit_service

    @app.route('/get', methods=['GET'])
    def get_config():
        """Return the config for ``gameId``; gated games are access logged."""
        game_id = request.args.get('gameId', '')
        record = config_service.get(game_id)
        if record is None:
            return _not_found(game_id)
        if config_service.is_gated(record):
            audit_service.log_access(request.remote_addr or '', game_id, request.path)
        return jsonify(record)

    @app.route('/set', methods=['GET'])
    def set_open():
        """Set ``isOpen`` for ``gameId``; only ``open=true`` opens the game."""
        game_id = request.args.get('gameId', '')
        is_open = request.args.get('open', '')
        try:
            config_service.set_open(game_id, is_open == 'true')
        except NotFoundError:
            return _not_found(game_id)
        except StorageError as exc:
            server_logger.error("Saving config failed: %s", exc)
            return jsonify({'error': 'Failed to save config'}), 500
        return jsonify({'message': f"gameId '{game_id}' isOpen set to '{is_open}'"})

    @app.route('/reloadCfg', methods=['GET'])
    def reload_config():
        """Re-read the config file and return every record."""
        try:
            return jsonify(config_service.reload())
        except (StorageError, ParseError) as exc:
            server_logger.error("Reloading config failed: %s", exc)
            return jsonify({'error': 'Failed to reload config'}), 500

    @app.route('/showlog', methods=['GET'])
    def show_log():
        """Return the gated-game access log."""
        try:
            body = audit_service.read_log()
        except StorageError:
            return jsonify({'message': 'Error reading log file'}), 500
        return Response(body, status=200, mimetype='text/plain; charset=utf-8')

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'healthy',
            'games': len(config_service),
            'geoip': audit_service.geo_available,
        })

    return app


def main(overrides: Optional[Dict] = None) -> int:
    """Start the service with settings from the environment and *overrides*."""
    settings = gate.load_settings(overrides)
    gate.setup_logging(settings['log_level'])
    _attach_file_handler(settings['log_level'])

    config_service, audit_service = gate.build_services(settings)
    app = create_app(config_service, audit_service)

    print("\n" + "=" * 60)
    print("GameGate service is starting...")
    print("=" * 60)
    print(f"\n  http://{settings['host']}:{settings['port']}")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 60 + "\n")

    try:
        app.run(host=settings['host'], port=settings['port'],
                debug=False, threaded=True)
    except KeyboardInterrupt:
        print("\nGameGate service stopped")
    finally:
        audit_service.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
