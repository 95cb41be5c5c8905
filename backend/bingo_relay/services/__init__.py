"""Relay services: fan-out, room cleanup and finance gateways.

These are transport-agnostic; the Socket.IO boundary and the HTTP routes
reach them through the :class:`~bingo_relay.context.RelayContext`.
"""
