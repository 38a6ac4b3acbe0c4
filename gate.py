#!/usr/bin/env python3
"""
GameGate - per-game configuration service
Serves game configuration records, toggles their open flag and audits
access to games that are not yet open.
"""

import argparse
import json
import logging
import os
import sys
from typing import Dict, Optional, Tuple

from colorama import init, Fore, Style
from dotenv import load_dotenv

from gamegate.errors import GameGateError, NotFoundError
from gamegate.repositories import AccessLogRepository, GameConfigRepository
from gamegate.services import AuditService, ConfigService, GeoService

load_dotenv()

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root GameGate logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal CLI use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger('gamegate')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS: Dict = {
    'config_path': 'config.json',
    'geoip_db': 'GeoLite2-City.mmdb',
    'access_log': 'log.txt',
    'host': '0.0.0.0',
    'port': 8089,
    'log_level': 'INFO',
    'geo_locale': 'zh-CN',
}

# setting name -> environment variable
ENV_VARS = {
    'config_path': 'GAMEGATE_CONFIG_PATH',
    'geoip_db': 'GAMEGATE_GEOIP_DB',
    'access_log': 'GAMEGATE_ACCESS_LOG',
    'host': 'GAMEGATE_HOST',
    'port': 'GAMEGATE_PORT',
    'log_level': 'GAMEGATE_LOG_LEVEL',
    'geo_locale': 'GAMEGATE_GEO_LOCALE',
}


def load_settings(overrides: Optional[Dict] = None) -> Dict:
    """Build the settings dict: defaults, then environment, then *overrides*.

    ``None`` values in *overrides* are ignored so argparse namespaces can be
    passed through unchanged.
    """
    settings = dict(DEFAULT_SETTINGS)
    for key, env_var in ENV_VARS.items():
        value = os.getenv(env_var)
        if value:
            settings[key] = value
    for key, value in (overrides or {}).items():
        if key in settings and value is not None:
            settings[key] = value
    try:
        settings['port'] = int(settings['port'])
    except (TypeError, ValueError):
        logging.getLogger('gamegate').warning(
            "Invalid port %r, using %d", settings['port'], DEFAULT_SETTINGS['port'])
        settings['port'] = DEFAULT_SETTINGS['port']
    return settings


def build_services(settings: Dict,
                   geo: Optional[GeoService] = None) -> Tuple[ConfigService, AuditService]:
    """Create the config store and audit logger described by *settings*.

    The config map is loaded immediately; a missing or broken file is
    logged and the store starts empty.
    """
    config_service = ConfigService(GameConfigRepository(settings['config_path']))
    try:
        config_service.load()
    except GameGateError:
        pass
    if geo is None:
        geo = GeoService.open(settings['geoip_db'], settings['geo_locale'])
    audit_service = AuditService(AccessLogRepository(settings['access_log']), geo)
    return config_service, audit_service


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def print_games(config_service: ConfigService) -> None:
    configs = config_service.all()
    if not configs:
        print(f"{Fore.YELLOW}No games configured.")
        return
    for game_id in sorted(configs):
        if configs[game_id]['isOpen']:
            state = f"{Fore.GREEN}open"
        else:
            state = f"{Fore.RED}gated"
        print(f"{Style.BRIGHT}{game_id}{Style.RESET_ALL}  {state}")


def main(argv=None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='GameGate - per-game configuration service',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 gate.py --serve              # Run the HTTP service
  python3 gate.py --list               # List games and their open state
  python3 gate.py --show game1         # Print one config record
  python3 gate.py --open game1         # Mark game1 as open and save
  python3 gate.py --close game1        # Mark game1 as gated and save
        """
    )
    parser.add_argument('--config', '-c', dest='config_path',
                        help='Path to config file (default: config.json)')
    parser.add_argument('--geoip-db', dest='geoip_db',
                        help='Path to GeoLite2 City database')
    parser.add_argument('--access-log', dest='access_log',
                        help='Path to the gated-game access log (default: log.txt)')
    parser.add_argument('--host', help='Address to bind (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, help='Port to listen on (default: 8089)')
    parser.add_argument('--log-level', dest='log_level',
                        help='DEBUG, INFO, WARNING, ERROR or CRITICAL')

    action = parser.add_mutually_exclusive_group()
    action.add_argument('--serve', action='store_true', help='Start the HTTP service')
    action.add_argument('--list', '-l', action='store_true',
                        help='List configured games and exit')
    action.add_argument('--show', metavar='GAME_ID', help='Print one config as JSON')
    action.add_argument('--open', metavar='GAME_ID', dest='open_game',
                        help='Set isOpen=true for GAME_ID')
    action.add_argument('--close', metavar='GAME_ID', dest='close_game',
                        help='Set isOpen=false for GAME_ID')

    args = parser.parse_args(argv)

    if args.serve:
        import gate_server
        return gate_server.main(vars(args))

    settings = load_settings(vars(args))
    # CLI stays quiet unless a level was requested explicitly
    setup_logging(args.log_level or 'WARNING')
    config_service = ConfigService(GameConfigRepository(settings['config_path']))

    try:
        config_service.load()
        if args.show:
            record = config_service.get(args.show)
            if record is None:
                raise NotFoundError(args.show)
            print(json.dumps(record, indent=2, ensure_ascii=False))
        elif args.open_game or args.close_game:
            game_id = args.open_game or args.close_game
            record = config_service.set_open(game_id, bool(args.open_game))
            print(f"{Fore.GREEN}gameId '{game_id}' isOpen set to "
                  f"'{str(record['isOpen']).lower()}'")
        else:
            print_games(config_service)
    except GameGateError as exc:
        print(f"{Fore.RED}Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
