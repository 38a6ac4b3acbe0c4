"""
GameGate application package.

Layered the same way throughout:

  gamegate/repositories/  — pure I/O: the JSON config file and the
                            append-only access log.
  gamegate/services/      — behaviour: locking, gated-game auditing and
                            IP geolocation.

``gate.py`` wires repositories and services together from settings, and
``gate_server.py`` exposes them over HTTP.  Route handlers only ever talk
to the services, never to the files directly.
"""
